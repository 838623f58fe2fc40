"""Tests for session endpoints and the Firebase auth dependencies behind them."""

import logging

import pytest
from fastapi.testclient import TestClient
from firebase_admin import auth

from database import get_db
from main import app
from models import UserDB

AUTH_HEADERS = {"Authorization": "Bearer test-token"}


@pytest.fixture
def unauthenticated_client(db_session, mock_firebase_auth):
    """Client that goes through real token verification against a mocked Firebase."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def valid_token(mock_firebase_auth, test_firebase_user):
    mock_firebase_auth.verify_id_token.return_value = test_firebase_user.claims | {
        "email_verified": True
    }
    return mock_firebase_auth


def test_session_anonymous(unauthenticated_client):
    response = unauthenticated_client.get("/api/v1/session")
    assert response.status_code == 200
    assert response.json() == {"authenticated": False, "user": None}


def test_session_with_invalid_token_is_anonymous(unauthenticated_client, mock_firebase_auth):
    mock_firebase_auth.verify_id_token.side_effect = auth.InvalidIdTokenError("bad token")

    response = unauthenticated_client.get("/api/v1/session", headers=AUTH_HEADERS)
    assert response.status_code == 200
    assert response.json()["authenticated"] is False


def test_session_authenticated(unauthenticated_client, valid_token, test_user):
    response = unauthenticated_client.get("/api/v1/session", headers=AUTH_HEADERS)
    assert response.status_code == 200
    data = response.json()

    assert data["authenticated"] is True
    assert data["user"]["user_id"] == str(test_user.id)
    assert data["user"]["email"] == "test@example.com"
    assert data["user"]["provider"] == "google.com"
    assert data["user"]["created_at"] is not None
    valid_token.verify_id_token.assert_called_once_with("test-token")


def test_first_sign_in_creates_local_user(unauthenticated_client, valid_token, db_session):
    response = unauthenticated_client.get("/api/v1/exercises", headers=AUTH_HEADERS)
    assert response.status_code == 200

    user = db_session.query(UserDB).filter(UserDB.firebase_uid == "test_firebase_uid_123").one()
    assert user.email == "test@example.com"


def test_protected_endpoint_without_token(unauthenticated_client):
    response = unauthenticated_client.get("/api/v1/exercises")
    assert response.status_code == 401
    assert response.json()["detail"] == "Missing authentication token"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_protected_endpoint_with_invalid_token(unauthenticated_client, mock_firebase_auth):
    mock_firebase_auth.verify_id_token.side_effect = auth.InvalidIdTokenError("bad token")

    response = unauthenticated_client.get("/api/v1/exercises", headers=AUTH_HEADERS)
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid authentication token"


def test_protected_endpoint_with_expired_token(unauthenticated_client, mock_firebase_auth):
    mock_firebase_auth.verify_id_token.side_effect = auth.ExpiredIdTokenError(
        "token expired", cause=None
    )

    response = unauthenticated_client.get("/api/v1/exercises", headers=AUTH_HEADERS)
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication token has expired"


def test_token_without_email(unauthenticated_client, mock_firebase_auth):
    mock_firebase_auth.verify_id_token.return_value = {"uid": "phone_only_uid"}

    response = unauthenticated_client.get("/api/v1/exercises", headers=AUTH_HEADERS)
    assert response.status_code == 401
    assert response.json()["detail"] == "User email is required"


def test_sign_out(client, mock_firebase_auth, test_authenticated_user):
    response = client.post("/api/v1/session/sign-out")
    assert response.status_code == 200
    assert response.json() == {"message": "Signed out."}
    mock_firebase_auth.revoke_refresh_tokens.assert_called_once_with(
        test_authenticated_user.firebase_uid
    )


def test_sign_out_failure(client, mock_firebase_auth, caplog):
    mock_firebase_auth.revoke_refresh_tokens.side_effect = RuntimeError("network down")

    with caplog.at_level(logging.ERROR, logger="gym_tracker"):
        response = client.post("/api/v1/session/sign-out")

    assert response.status_code == 500
    assert "network down" in response.json()["detail"]
    errors = [r for r in caplog.records if r.name == "gym_tracker"]
    assert len(errors) == 1
    assert "POST" in errors[0].getMessage()
    assert "/api/v1/session/sign-out" in errors[0].getMessage()


def test_client_errors_are_not_logged_as_internal(client, caplog):
    with caplog.at_level(logging.ERROR, logger="gym_tracker"):
        response = client.get("/api/v1/workouts/active")

    assert response.status_code == 404
    assert not [r for r in caplog.records if r.name == "gym_tracker"]


def test_health(unauthenticated_client):
    response = unauthenticated_client.get("/health")
    assert response.status_code == 200
