from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Callable

from storefront.core.persistence import KeyValueStore
from storefront.errors import AuthenticationError

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"
USER_ID_KEY = "userId"
USER_EMAIL_KEY = "userEmail"
USER_NAME_KEY = "userName"

IdentityCallback = Callable[[str | None, str | None], None]


def decode_token(token: str) -> dict[str, Any]:
    """Decode a JWT payload without verifying it; verification belongs to the server."""
    parts = token.split(".")
    if len(parts) < 2 or not parts[1]:
        raise AuthenticationError("Malformed token: missing payload segment")
    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(segment.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise AuthenticationError(f"Malformed token payload: {exc}") from exc
    if not isinstance(payload, dict):
        raise AuthenticationError("Malformed token payload: not an object")
    return payload


def user_id_from_token(token: str) -> str | None:
    payload = decode_token(token)
    for claim in ("userId", "_id", "id", "sub"):
        value = payload.get(claim)
        if value:
            return str(value)
    return None


class IdentityProvider:
    def __init__(self, store: KeyValueStore):
        self.store = store
        self._callbacks: list[IdentityCallback] = []

    @property
    def token(self) -> str | None:
        value = self.store.get(AUTH_TOKEN_KEY)
        return str(value) if value else None

    @property
    def email(self) -> str | None:
        value = self.store.get(USER_EMAIL_KEY)
        return str(value) if value else None

    @property
    def user_name(self) -> str | None:
        value = self.store.get(USER_NAME_KEY)
        return str(value) if value else None

    def get_current_identity(self) -> str | None:
        if not self.token:
            return None
        user_id = self.store.get(USER_ID_KEY)
        return str(user_id) if user_id else None

    def on_identity_change(self, callback: IdentityCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def _notify(self, previous: str | None, current: str | None) -> None:
        if previous == current:
            return
        for callback in list(self._callbacks):
            callback(previous, current)

    def sign_in(
        self,
        token: str,
        user_id: str | None = None,
        *,
        email: str | None = None,
        name: str | None = None,
    ) -> str:
        if not token:
            raise AuthenticationError("Sign-in response carried no token")
        resolved = user_id or user_id_from_token(token)
        if not resolved:
            raise AuthenticationError("Sign-in response carried no user id")

        previous = self.get_current_identity()
        self.store.set(AUTH_TOKEN_KEY, token)
        self.store.set(USER_ID_KEY, resolved)
        for key, value in ((USER_EMAIL_KEY, email), (USER_NAME_KEY, name)):
            if value:
                self.store.set(key, value)
            else:
                self.store.remove(key)
        logger.info("Signed in as %s", resolved)
        self._notify(previous, resolved)
        return resolved

    def sign_out(self) -> None:
        previous = self.get_current_identity()
        self.store.remove(AUTH_TOKEN_KEY)
        self.store.remove(USER_ID_KEY)
        self.store.remove(USER_EMAIL_KEY)
        self.store.remove(USER_NAME_KEY)
        logger.info("Signed out %s", previous or "guest")
        self._notify(previous, None)
