"""REST API endpoints for the active workout session."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import AuthenticatedUser, get_or_create_user
from database import get_db
from models import WorkoutDB, utcnow
from queries import (
    create_exercise,
    create_workout,
    delete_workout,
    find_exercise_by_name,
    finish_workout,
    get_active_workout,
    get_workout,
    insert_workout_exercise,
    insert_workout_sets,
    is_unique_violation,
    list_recent_workouts,
)
from typedefs import (
    ActiveWorkoutResponse,
    FinishExerciseRequest,
    SetDraftsResponse,
    SetDraftUpdateRequest,
    WorkoutResponse,
    WorkoutSummaryResponse,
)
from workout_session import (
    completed_sets_from_drafts,
    initial_set_drafts,
    to_active_workout,
    update_set_draft,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/workouts", tags=["workouts"])


def get_owned_workout(db: Session, workout_id: UUID, user: AuthenticatedUser) -> WorkoutDB:
    workout = get_workout(db, workout_id, user.user_id)
    if not workout:
        raise HTTPException(status_code=404, detail="Workout not found")
    return workout


def add_to_library_if_missing(db: Session, user: AuthenticatedUser, name: str) -> None:
    """Add a newly used exercise name to the user's library.

    A duplicate created concurrently is not an error.
    """
    if find_exercise_by_name(db, user.user_id, name):
        return
    try:
        create_exercise(db, user.user_id, name)
    except IntegrityError as err:
        if not is_unique_violation(err):
            raise
        logger.debug("Exercise %r already in library for %s", name, user.user_id)


@router.post("", response_model=WorkoutResponse, status_code=201)
def start_workout(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> WorkoutResponse:
    """Start a new workout session now.

    Raises:
        409: The user already has a workout in progress
    """
    if get_active_workout(db, user.user_id):
        raise HTTPException(status_code=409, detail="A workout is already in progress")

    workout = create_workout(db, user.user_id, utcnow())
    db.commit()
    db.refresh(workout)
    logger.info("User %s started workout %s", user.user_id, workout.id)
    return WorkoutResponse.model_validate(workout)


@router.get("", response_model=List[WorkoutSummaryResponse])
def recent_workouts(
    limit: int = Query(5, ge=1, le=100),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[WorkoutSummaryResponse]:
    """Most recent workouts, newest first, with their exercise counts."""
    return [
        WorkoutSummaryResponse(
            id=workout.id,
            started_at=workout.started_at,
            finished_at=workout.finished_at,
            exercise_count=exercise_count,
        )
        for workout, exercise_count in list_recent_workouts(db, user.user_id, limit)
    ]


@router.get("/active", response_model=ActiveWorkoutResponse)
def active_workout(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ActiveWorkoutResponse:
    """The workout currently in progress, with the exercises logged so far."""
    workout = get_active_workout(db, user.user_id)
    if not workout:
        raise HTTPException(status_code=404, detail="No active workout")
    return to_active_workout(workout)


@router.get("/set-drafts", response_model=SetDraftsResponse)
def new_set_drafts(
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SetDraftsResponse:
    """Set-entry rows for a fresh exercise: one empty row."""
    return SetDraftsResponse(drafts=initial_set_drafts())


@router.post("/set-drafts", response_model=SetDraftsResponse)
def edit_set_draft(
    request: SetDraftUpdateRequest,
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> SetDraftsResponse:
    """Apply one keystroke-level edit to the set-entry rows.

    Filling in the last row adds a new row that carries the weight forward.
    """
    try:
        drafts = update_set_draft(request.drafts, request.index, request.field, request.value)
    except ValueError as err:
        raise HTTPException(status_code=400, detail=str(err)) from err
    return SetDraftsResponse(drafts=drafts)


@router.post(
    "/{workout_id}/exercises", response_model=ActiveWorkoutResponse, status_code=201
)
def finish_exercise(
    workout_id: UUID,
    request: FinishExerciseRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ActiveWorkoutResponse:
    """Save an exercise and its completed sets to a workout in progress.

    Rows that are incomplete or invalid are dropped. The exercise name joins
    the user's library if it is not there yet.

    Raises:
        400: Blank name, no valid sets, or the workout is finished
        404: Workout not found
    """
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Exercise name is required")

    completed_sets = completed_sets_from_drafts(request.sets)
    if not completed_sets:
        raise HTTPException(status_code=400, detail="Add at least one completed set")

    workout = get_owned_workout(db, workout_id, user)
    if workout.finished_at is not None:
        raise HTTPException(status_code=400, detail="Cannot modify a finished workout")

    position = len(workout.exercises) + 1
    workout_exercise = insert_workout_exercise(db, workout.id, name, position)
    insert_workout_sets(db, workout_exercise.id, completed_sets)
    add_to_library_if_missing(db, user, name)

    db.commit()
    db.refresh(workout)
    return to_active_workout(workout)


@router.post("/{workout_id}/finish", response_model=WorkoutResponse)
def finish(
    workout_id: UUID,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> WorkoutResponse:
    """Finish a workout by setting finished_at to now."""
    workout = get_owned_workout(db, workout_id, user)
    if workout.finished_at is not None:
        raise HTTPException(status_code=400, detail="Workout has already been finished")

    finish_workout(db, workout, utcnow())
    db.commit()
    db.refresh(workout)
    return WorkoutResponse.model_validate(workout)


@router.delete("/{workout_id}", status_code=204)
def remove_workout(
    workout_id: UUID,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> None:
    """Delete a workout with all its exercises and sets.

    Used both to cancel the active workout and to delete one from history.
    """
    if not delete_workout(db, workout_id, user.user_id):
        raise HTTPException(status_code=404, detail="Workout not found")
    db.commit()
