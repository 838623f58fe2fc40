"""REST API endpoints for the user's profile and public profile search."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth import AuthenticatedUser, get_or_create_user
from database import get_db
from queries import get_profile, search_public_profiles, upsert_profile
from typedefs import ProfileResponse, ProfileUpdateRequest, PublicProfileResponse

router = APIRouter(prefix="/api/v1", tags=["profile"])


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@router.get("/profile", response_model=Optional[ProfileResponse])
def read_profile(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> Optional[ProfileResponse]:
    """The authenticated user's profile, or null if it was never saved."""
    profile = get_profile(db, user.user_id)
    if profile is None:
        return None
    return ProfileResponse.model_validate(profile)


@router.put("/profile", response_model=ProfileResponse)
def save_profile(
    request: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ProfileResponse:
    """Create or replace the authenticated user's profile."""
    profile = upsert_profile(
        db,
        user.user_id,
        display_name=blank_to_none(request.display_name),
        avatar_url=blank_to_none(request.avatar_url),
        is_progress_public=request.is_progress_public,
    )
    db.commit()
    db.refresh(profile)
    return ProfileResponse.model_validate(profile)


@router.get("/profiles/search", response_model=List[PublicProfileResponse])
def search_profiles(
    q: str = Query(""),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[PublicProfileResponse]:
    """Find other users who share their progress, by display name."""
    query = q.strip()
    if not query:
        return []
    return [
        PublicProfileResponse.model_validate(p)
        for p in search_public_profiles(db, query, exclude_user_id=user.user_id)
    ]
