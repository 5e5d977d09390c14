from __future__ import annotations

import base64
import json

import pytest

from storefront.errors import AuthenticationError, NotFoundError, ValidationError
from storefront.identity import decode_token, user_id_from_token
from storefront.services import AuthService


def make_token(payload: dict) -> str:
    body = base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("ascii").rstrip("=")
    return f"eyJhbGciOiJIUzI1NiJ9.{body}.signature"


def test_decode_token_reads_unpadded_payload() -> None:
    token = make_token({"userId": "abc123", "name": "Mona"})

    assert decode_token(token)["name"] == "Mona"
    assert user_id_from_token(token) == "abc123"


def test_decode_token_rejects_garbage() -> None:
    with pytest.raises(AuthenticationError):
        decode_token("not-a-token")


def test_identity_starts_as_guest_and_notifies_changes(identity) -> None:  # noqa: ANN001
    seen = []
    unsubscribe = identity.on_identity_change(lambda previous, current: seen.append((previous, current)))

    assert identity.get_current_identity() is None
    identity.sign_in(make_token({"sub": "u7"}))
    identity.sign_out()
    unsubscribe()
    identity.sign_in("t", "u8")

    assert seen == [(None, "u7"), ("u7", None)]


def test_login_stores_token_and_authorizes_client(session, client, identity, test_logger) -> None:  # noqa: ANN001
    session.add("POST", "/login", payload={"token": "tok-1", "user": {"_id": "u1", "name": "Mona"}})
    session.add("GET", "/orders/u1", payload=[])
    auth = AuthService(client, identity, test_logger)

    assert auth.login("mona@example.com", "secret") == "u1"
    client.list_orders("u1")

    assert identity.token == "tok-1"
    assert session.calls[-1]["headers"]["Authorization"] == "Bearer tok-1"


def test_login_requires_both_fields(client, identity, test_logger, session) -> None:  # noqa: ANN001
    auth = AuthService(client, identity, test_logger)

    with pytest.raises(ValidationError) as exc_info:
        auth.login("mona@example.com", "")

    assert exc_info.value.user_message == "Both email and password are required."
    assert session.calls == []


def test_register_rejects_malformed_email(client, identity, test_logger, session) -> None:  # noqa: ANN001
    auth = AuthService(client, identity, test_logger)

    with pytest.raises(ValidationError):
        auth.register("Mona", "mona@example", "secret")
    assert session.calls == []


def test_register_falls_back_to_token_user_id(session, client, identity, test_logger) -> None:  # noqa: ANN001
    session.add("POST", "/register", status=201, payload={"token": make_token({"userId": "u9"}), "user": {"name": "Mona"}})
    auth = AuthService(client, identity, test_logger)

    assert auth.register("Mona", "mona@example.com", "secret") == "u9"
    assert identity.get_current_identity() == "u9"


def test_failed_login_surfaces_server_message(session, client, identity, test_logger) -> None:  # noqa: ANN001
    session.add("POST", "/login", status=401, payload={"message": "Invalid email or password"})
    auth = AuthService(client, identity, test_logger)

    with pytest.raises(AuthenticationError) as exc_info:
        auth.login("mona@example.com", "wrong")

    assert exc_info.value.user_message == "Invalid email or password"
    assert identity.get_current_identity() is None


def test_sign_out_forgets_stored_email(session, client, identity, test_logger) -> None:  # noqa: ANN001
    session.add("POST", "/login", payload={"token": "tok-1", "user": {"_id": "u1", "name": "Mona"}})
    auth = AuthService(client, identity, test_logger)

    auth.login(" mona@example.com ", "secret")
    assert identity.email == "mona@example.com"
    assert identity.user_name == "Mona"

    auth.logout()
    assert identity.email is None
    assert identity.user_name is None


def test_change_password_posts_stored_email(session, client, identity, test_logger) -> None:  # noqa: ANN001
    session.add("POST", "/login", payload={"token": "tok-1", "user": {"_id": "u1", "email": "mona@example.com"}})
    session.add("POST", "/change-password", payload={"message": "Password updated successfully"})
    auth = AuthService(client, identity, test_logger)
    auth.login("MONA@example.com", "old")

    assert auth.change_password("old", "new") == "Password updated successfully"
    assert session.calls_to("POST", "/change-password")[0]["json"] == {
        "email": "mona@example.com",
        "oldPassword": "old",
        "newPassword": "new",
    }


def test_change_password_requires_sign_in_and_fields(client, identity, test_logger, session) -> None:  # noqa: ANN001
    auth = AuthService(client, identity, test_logger)

    with pytest.raises(ValidationError):
        auth.change_password("", "new")
    with pytest.raises(AuthenticationError) as exc_info:
        auth.change_password("old", "new")

    assert exc_info.value.user_message == "No email found. Please log in again."
    assert session.calls == []


def test_password_reset_validates_email_before_request(client, identity, test_logger, session) -> None:  # noqa: ANN001
    session.add("POST", "/request-password-reset", status=404, payload={"message": "User not found"})
    auth = AuthService(client, identity, test_logger)

    with pytest.raises(ValidationError) as missing:
        auth.request_password_reset("  ")
    assert missing.value.user_message == "Email is required."
    assert session.calls == []

    with pytest.raises(NotFoundError) as unknown:
        auth.request_password_reset("ghost@example.com")
    assert unknown.value.user_message == "User not found"


def test_profile_loads_current_user(session, client, identity, test_logger) -> None:  # noqa: ANN001
    session.add("GET", "/users/u1", payload={"name": "Mona", "email": "mona@example.com"})
    auth = AuthService(client, identity, test_logger)

    with pytest.raises(AuthenticationError):
        auth.profile()

    identity.sign_in("tok", "u1")
    profile = auth.profile()

    assert profile.user_id == "u1"
    assert profile.name == "Mona"
