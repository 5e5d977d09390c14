from .client import StorefrontApiClient

__all__ = ["StorefrontApiClient"]
