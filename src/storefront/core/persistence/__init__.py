from .write_queue import KeyValueStore, WriteQueue

__all__ = ["KeyValueStore", "WriteQueue"]
