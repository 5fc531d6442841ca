"""Unit tests for authentication helpers and endpoints."""

from __future__ import annotations

import pytest
from fastapi import HTTPException

from app.api.auth import login_user
from app.api.deps import get_user_from_token
from app.core.security import create_access_token, get_password_hash
from app.models import User
from app.schemas import LoginRequest


@pytest.fixture()
def user(db_session):
    db_user = User(
        name="Tester",
        email="tester@example.com",
        hashed_password=get_password_hash("supersecret"),
    )
    db_session.add(db_user)
    db_session.commit()
    return db_user


def test_login_user_returns_token(db_session, user):
    """Successful login should return a bearer token."""

    credentials = LoginRequest(email="Tester@Example.com", password="supersecret")
    token = login_user(credentials, db_session)

    assert token.token_type == "bearer"
    assert isinstance(token.access_token, str) and token.access_token
    assert token.expires_in == 60 * 60


def test_login_user_rejects_invalid_credentials(db_session, user):
    """Invalid credentials must raise an HTTP 401 error."""

    for email, password in (("ghost@example.com", "doesnotmatter"), ("tester@example.com", "wrongsecret")):
        with pytest.raises(HTTPException) as exc:
            login_user(LoginRequest(email=email, password=password), db_session)

        assert exc.value.status_code == 401
        assert "Incorrect email or password" in exc.value.detail


def test_get_user_from_token(db_session, user):
    """Tokens should resolve to existing users."""

    token = create_access_token({"sub": str(user.id)})
    resolved = get_user_from_token(token, db_session)

    assert resolved.id == user.id
    assert resolved.email == user.email


@pytest.mark.parametrize("claims", [{}, {"sub": "not-a-number"}, {"sub": "4242"}])
def test_get_user_from_token_rejects_bad_subjects(db_session, claims):
    token = create_access_token(claims)
    with pytest.raises(HTTPException) as exc:
        get_user_from_token(token, db_session)

    assert exc.value.status_code == 401


def test_get_user_from_token_invalid_payload(db_session):
    """Invalid tokens must result in a 401 error."""

    with pytest.raises(HTTPException) as exc:
        get_user_from_token("invalid-token", db_session)

    assert exc.value.status_code == 401
    assert "Could not validate credentials" in exc.value.detail
