"""Session state and sign-out endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from firebase_admin import auth

from auth import AuthenticatedUser, get_or_create_user, optional_user
from firebase_config import get_firebase_auth
from typedefs import SessionResponse, SessionUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/session", tags=["session"])


@router.get("", response_model=SessionResponse)
def current_session(
    user: Optional[AuthenticatedUser] = Depends(optional_user),
) -> SessionResponse:
    """Who is signed in, if anyone.

    Anonymous callers get authenticated=false rather than a 401, so a client
    can use this to decide between the sign-in screen and the app.
    """
    if user is None:
        return SessionResponse(authenticated=False, user=None)

    return SessionResponse(
        authenticated=True,
        user=SessionUser(
            user_id=user.user_id,
            email=user.email,
            provider=user.firebase_user.provider,
            created_at=user.created_at,
        ),
    )


@router.post("/sign-out")
def sign_out(
    user: AuthenticatedUser = Depends(get_or_create_user),
    auth_instance: auth = Depends(get_firebase_auth),
) -> dict:
    """Revoke the user's refresh tokens so every device has to sign in again."""
    try:
        auth_instance.revoke_refresh_tokens(user.firebase_uid)
    except Exception as e:
        logger.error("Failed to revoke tokens for %s: %s", user.firebase_uid, e)
        raise HTTPException(status_code=500, detail=f"Could not sign out: {str(e)}") from e

    logger.info("User %s signed out", user.user_id)
    return {"message": "Signed out."}
