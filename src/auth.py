"""Firebase Authentication dependencies and utilities."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from firebase_admin import auth
from pydantic import BaseModel
from sqlalchemy.orm import Session

from database import get_db
from firebase_config import get_firebase_auth
from models import UserDB

logger = logging.getLogger(__name__)


class FirebaseUser(BaseModel):
    """Represents a verified Firebase user from token."""

    uid: str  # Firebase UID
    email: Optional[str] = None
    email_verified: bool = False

    # Additional Firebase claims
    claims: dict = {}

    @property
    def provider(self) -> Optional[str]:
        """Sign-in provider reported by Firebase (e.g. "google.com")."""
        return self.claims.get("firebase", {}).get("sign_in_provider")


class AuthenticatedUser(BaseModel):
    """Represents a fully authenticated user with local DB record.

    This is the context object injected into authenticated endpoints.
    """

    firebase_uid: str
    user_id: UUID  # Local database user ID
    email: str
    created_at: Optional[datetime] = None
    firebase_user: FirebaseUser


def extract_token_from_request(request: Request) -> Optional[str]:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return None

    return auth_header[7:]  # Remove "Bearer " prefix


def decode_token(auth_instance, token: str) -> FirebaseUser:
    """Verify an ID token and wrap the decoded claims."""
    decoded_token = auth_instance.verify_id_token(token)
    return FirebaseUser(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        claims=decoded_token,
    )


async def verify_firebase_token(
    request: Request,
    auth_instance: auth = Depends(get_firebase_auth),
) -> FirebaseUser:
    """Verify Firebase ID token and return user info.

    Raises:
        HTTPException: 401 if token is invalid/missing
    """
    token = extract_token_from_request(request)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_token(auth_instance, token)
    except auth.ExpiredIdTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err
    except auth.InvalidIdTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err
    except Exception as e:
        logger.warning("Token verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Authentication failed: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def resolve_local_user(db: Session, firebase_user: FirebaseUser) -> AuthenticatedUser:
    """Look up the local user for a verified Firebase user, creating it on first login.

    Raises:
        HTTPException: 401 if the token carries no email
        HTTPException: 500 if user creation fails
    """
    if not firebase_user.email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User email is required",
        )

    user = db.query(UserDB).filter(UserDB.firebase_uid == firebase_user.uid).first()

    if not user:
        try:
            user = UserDB(
                firebase_uid=firebase_user.uid,
                email=firebase_user.email,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info("Created local user %s for %s", user.id, firebase_user.uid)
        except Exception as e:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create user: {str(e)}",
            ) from e

    return AuthenticatedUser(
        firebase_uid=firebase_user.uid,
        user_id=user.id,
        email=user.email,
        created_at=user.created_at,
        firebase_user=firebase_user,
    )


async def get_or_create_user(
    firebase_user: FirebaseUser = Depends(verify_firebase_token),
    db: Session = Depends(get_db),
) -> AuthenticatedUser:
    """Full authenticated user context. Use this for most endpoints.

    Example:
        @router.get("/api/v1/exercises")
        def list_exercises(user: AuthenticatedUser = Depends(get_or_create_user)):
            ...
    """
    return resolve_local_user(db, firebase_user)


async def optional_auth(
    request: Request,
    auth_instance: auth = Depends(get_firebase_auth),
) -> Optional[FirebaseUser]:
    """Optional authentication - returns None if not authenticated."""
    token = extract_token_from_request(request)

    if not token:
        return None

    try:
        return decode_token(auth_instance, token)
    except Exception as e:
        # If token verification fails, treat as unauthenticated
        logger.debug("Ignoring unverifiable token: %s", e)
        return None


async def optional_user(
    firebase_user: Optional[FirebaseUser] = Depends(optional_auth),
    db: Session = Depends(get_db),
) -> Optional[AuthenticatedUser]:
    """Like get_or_create_user, but None for anonymous callers."""
    if firebase_user is None:
        return None
    return resolve_local_user(db, firebase_user)
