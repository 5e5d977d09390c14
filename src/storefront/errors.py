from __future__ import annotations

from typing import Any

import requests


class StorefrontError(Exception):
    """Base error; ``user_message`` is safe to show to the shopper as is."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, detail: str | None = None, *, user_message: str | None = None, status_code: int | None = None):
        super().__init__(detail or user_message or self.default_message)
        self.user_message = user_message or self.default_message
        self.status_code = status_code


class ValidationError(StorefrontError):
    default_message = "Please fill all the required fields."


class DuplicateResourceError(StorefrontError):
    default_message = "This record already exists."


class TransientNetworkError(StorefrontError):
    default_message = "Network error. Please check your connection and try again."


class NotFoundError(StorefrontError):
    default_message = "The requested record was not found."


class AuthenticationError(StorefrontError):
    default_message = "Invalid email or password."


def _server_message(response: requests.Response) -> str | None:
    try:
        payload: Any = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def error_from_response(response: requests.Response, action: str) -> StorefrontError:
    status = response.status_code
    server_message = _server_message(response)
    detail = f"{action} failed: HTTP {status} {response.url}"

    if status == 400 or status == 422:
        return ValidationError(detail, user_message=server_message, status_code=status)
    if status in (401, 403):
        return AuthenticationError(detail, user_message=server_message, status_code=status)
    if status == 404:
        return NotFoundError(detail, user_message=server_message, status_code=status)
    if status == 409:
        return DuplicateResourceError(detail, user_message=server_message, status_code=status)
    # 5xx and anything unexpected: the shopper can only retry.
    return TransientNetworkError(detail, status_code=status)


def error_from_exception(exc: requests.RequestException, action: str) -> TransientNetworkError:
    return TransientNetworkError(f"{action} failed: {exc.__class__.__name__}: {exc}")
