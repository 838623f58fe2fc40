"""REST API endpoints for progress charts and comparisons."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from auth import AuthenticatedUser, get_or_create_user
from database import get_db
from models import ProfileDB, utcnow
from progress import (
    DEFAULT_RANGE,
    exercise_names,
    range_days,
    summarize_exercise_progress,
)
from queries import (
    get_profile,
    get_progress_series,
    list_aggregated_workout_progress,
    load_history,
)
from typedefs import (
    AggregatedWorkoutProgressRow,
    ExerciseProgressResponse,
    ProgressCompareResponse,
    ProgressSeriesRow,
    PublicProfileResponse,
    RangeKey,
)

router = APIRouter(prefix="/api/v1/progress", tags=["progress"])


def get_comparable_profile(db: Session, target_user_id: UUID) -> ProfileDB:
    """Profile of another user whose progress may be read.

    Raises:
        HTTPException: 403 unless the profile exists and is public
    """
    profile = get_profile(db, target_user_id)
    if profile is None or not profile.is_progress_public or not profile.display_name:
        raise HTTPException(status_code=403, detail="Progress for this user is not public")
    return profile


def clean_exercise(exercise: str) -> str:
    cleaned = exercise.strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail="Exercise name is required")
    return cleaned


def read_series(
    db: Session, target_user_id: UUID, exercise: str, range_key: RangeKey
) -> List[ProgressSeriesRow]:
    try:
        return get_progress_series(
            db, target_user_id, exercise, range_days(range_key), utcnow()
        )
    except DBAPIError as err:
        raise HTTPException(status_code=502, detail="Progress data unavailable") from err


@router.get("/exercises", response_model=List[str])
def progress_exercises(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[str]:
    """Exercises that appear in the user's finished workouts."""
    return exercise_names(load_history(db, user.user_id))


@router.get("", response_model=ExerciseProgressResponse)
def exercise_progress(
    exercise: Optional[str] = None,
    range_key: RangeKey = Query(DEFAULT_RANGE, alias="range"),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ExerciseProgressResponse:
    """Per-workout max weight, volume and reps for one exercise.

    Defaults to the first exercise alphabetically when none is given.
    """
    history = load_history(db, user.user_id)
    return summarize_exercise_progress(
        history, exercise.strip() if exercise else None, range_key, utcnow()
    )


@router.get("/aggregated", response_model=List[AggregatedWorkoutProgressRow])
def aggregated_progress(
    range_key: RangeKey = Query(DEFAULT_RANGE, alias="range"),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[AggregatedWorkoutProgressRow]:
    """Totals per workout across all exercises, oldest first."""
    try:
        return list_aggregated_workout_progress(
            db, user.user_id, range_days(range_key), utcnow()
        )
    except DBAPIError as err:
        raise HTTPException(status_code=502, detail="Progress data unavailable") from err


@router.get("/series", response_model=List[ProgressSeriesRow])
def progress_series(
    exercise: str = Query(..., min_length=1),
    range_key: RangeKey = Query(DEFAULT_RANGE, alias="range"),
    user_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[ProgressSeriesRow]:
    """Daily series for one exercise, for the caller or a public user."""
    exercise = clean_exercise(exercise)
    target_user_id = user_id or user.user_id
    if target_user_id != user.user_id:
        get_comparable_profile(db, target_user_id)
    return read_series(db, target_user_id, exercise, range_key)


@router.get("/compare", response_model=ProgressCompareResponse)
def compare_progress(
    user_id: UUID,
    exercise: str = Query(..., min_length=1),
    range_key: RangeKey = Query(DEFAULT_RANGE, alias="range"),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ProgressCompareResponse:
    """The caller's series next to another public user's, for one exercise."""
    exercise = clean_exercise(exercise)
    if user_id == user.user_id:
        raise HTTPException(status_code=400, detail="Choose another user to compare with")

    profile = get_comparable_profile(db, user_id)
    return ProgressCompareResponse(
        exercise=exercise,
        range=range_key,
        mine=read_series(db, user.user_id, exercise, range_key),
        theirs=read_series(db, user_id, exercise, range_key),
        compare_user=PublicProfileResponse.model_validate(profile),
    )
