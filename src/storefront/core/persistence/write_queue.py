from __future__ import annotations

import copy
import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


@dataclass(slots=True)
class _PendingWrite:
    value: Any
    delete: bool = False


class WriteQueue:
    """Fire-and-forget persistence with per-key ordering.

    Callers never wait on storage. A single worker thread drains pending writes; for a
    given key only the most recent write is kept, so the stored value always matches the
    last mutation. Reads consult pending and in-flight writes before the store.
    """

    def __init__(self, store: KeyValueStore, name: str = "storefront-persistence"):
        self._store = store
        self._pending: dict[str, _PendingWrite] = {}
        self._ready: deque[str] = deque()
        self._in_flight: tuple[str, _PendingWrite] | None = None
        self._condition = threading.Condition()
        self._closed = False
        self._failures = 0
        self._worker = threading.Thread(target=self._run, name=name, daemon=True)
        self._worker.start()

    @property
    def failures(self) -> int:
        return self._failures

    def set(self, key: str, value: Any) -> None:
        self._submit(key, _PendingWrite(value=copy.deepcopy(value)))

    def remove(self, key: str) -> None:
        self._submit(key, _PendingWrite(value=None, delete=True))

    def get(self, key: str) -> Any | None:
        with self._condition:
            write = self._pending.get(key)
            if write is None and self._in_flight is not None and self._in_flight[0] == key:
                write = self._in_flight[1]
            if write is not None:
                return None if write.delete else copy.deepcopy(write.value)
        return self._store.get(key)

    def _submit(self, key: str, write: _PendingWrite) -> None:
        with self._condition:
            if self._closed:
                raise RuntimeError("Write queue is closed")
            if key not in self._pending:
                self._ready.append(key)
            self._pending[key] = write
            self._condition.notify_all()

    def _run(self) -> None:
        while True:
            with self._condition:
                while not self._ready and not self._closed:
                    self._condition.wait()
                if not self._ready:
                    return
                key = self._ready.popleft()
                write = self._pending.pop(key)
                self._in_flight = (key, write)

            try:
                if write.delete:
                    self._store.remove(key)
                else:
                    self._store.set(key, write.value)
            except Exception:  # noqa: BLE001
                self._failures += 1
                logger.exception("Persisting key %s failed", key)
            finally:
                with self._condition:
                    self._in_flight = None
                    self._condition.notify_all()

    def flush(self, timeout: float | None = None) -> bool:
        """Block until every write submitted so far has reached the store."""
        with self._condition:
            return self._condition.wait_for(
                lambda: not self._pending and self._in_flight is None,
                timeout=timeout,
            )

    def close(self, timeout: float | None = 5.0) -> None:
        self.flush(timeout=timeout)
        with self._condition:
            self._closed = True
            self._condition.notify_all()
        self._worker.join(timeout=timeout)

    def __enter__(self) -> WriteQueue:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()
