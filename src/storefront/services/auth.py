from __future__ import annotations

import logging
import re

from storefront.api import StorefrontApiClient
from storefront.errors import AuthenticationError, ValidationError
from storefront.identity import IdentityProvider
from storefront.models import UserProfile

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


class AuthService:
    def __init__(
        self,
        client: StorefrontApiClient,
        identity: IdentityProvider,
        logger: logging.Logger | logging.LoggerAdapter,
    ):
        self.client = client
        self.identity = identity
        self.logger = logger

    def _complete_sign_in(self, data: dict, email: str, name: str | None = None) -> str:
        token = data.get("token")
        user = data.get("user") or {}
        if not token:
            raise AuthenticationError("Sign-in response carried no token")
        user_id = user.get("_id") or user.get("id")
        resolved = self.identity.sign_in(
            str(token),
            str(user_id) if user_id else None,
            email=user.get("email") or email,
            name=user.get("name") or name,
        )
        self.client.authorize(str(token))
        return resolved

    def login(self, email: str, password: str) -> str:
        if not email or not password:
            raise ValidationError(
                "Login without email or password",
                user_message="Both email and password are required.",
            )
        data = self.client.login(email.strip(), password)
        user_id = self._complete_sign_in(data, email.strip())
        self.logger.info("Login succeeded for %s", user_id)
        return user_id

    def register(self, name: str, email: str, password: str) -> str:
        if not name or not email or not password:
            raise ValidationError("Registration with empty fields", user_message="Please fill all fields.")
        if not is_valid_email(email.strip()):
            raise ValidationError(
                f"Invalid email: {email}",
                user_message="Please enter a valid email address.",
            )
        data = self.client.register(name.strip(), email.strip(), password)
        user_id = self._complete_sign_in(data, email.strip(), name.strip())
        self.logger.info("Registration succeeded for %s", user_id)
        return user_id

    def logout(self) -> None:
        self.identity.sign_out()
        self.client.authorize(None)

    def profile(self) -> UserProfile:
        user_id = self.identity.get_current_identity()
        if not user_id:
            raise AuthenticationError("Profile requested while signed out", user_message="Please sign in first.")
        return self.client.get_user(user_id)

    def change_password(self, old_password: str, new_password: str) -> str:
        if not old_password or not new_password:
            raise ValidationError("Password change with empty fields", user_message="Please fill in all fields.")
        email = self.identity.email
        if not self.identity.get_current_identity() or not email:
            raise AuthenticationError(
                "Password change without a stored email",
                user_message="No email found. Please log in again.",
            )
        message = self.client.change_password(email, old_password, new_password)
        self.logger.info("Password changed for %s", self.identity.get_current_identity())
        return message or "Password changed."

    def request_password_reset(self, email: str) -> str:
        email = (email or "").strip()
        if not email:
            raise ValidationError("Password reset without email", user_message="Email is required.")
        if not is_valid_email(email):
            raise ValidationError(f"Invalid email: {email}", user_message="Please enter a valid email address.")
        message = self.client.request_password_reset(email)
        self.logger.info("Password reset requested")
        return message or "Password reset instructions were sent to your email."
