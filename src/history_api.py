"""REST API endpoints for browsing and editing past workouts."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from auth import AuthenticatedUser, get_or_create_user
from database import get_db
from history_edits import build_history_changes, to_editable
from queries import (
    delete_workout_exercise,
    get_workout,
    list_workout_history,
    update_workout_exercise_name,
    update_workout_set,
)
from typedefs import HistoryEditForm, HistoryEditRequest, WorkoutHistoryResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/history", tags=["history"])


def get_finished_workout(
    db: Session, workout_id: UUID, user: AuthenticatedUser
) -> WorkoutHistoryResponse:
    workout = get_workout(db, workout_id, user.user_id)
    if not workout or workout.finished_at is None:
        raise HTTPException(status_code=404, detail="Workout not found")
    return WorkoutHistoryResponse.model_validate(workout)


@router.get("", response_model=List[WorkoutHistoryResponse])
def list_history(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[WorkoutHistoryResponse]:
    """Finished workouts, newest first, with exercises and sets in order."""
    return [
        WorkoutHistoryResponse.model_validate(w)
        for w in list_workout_history(db, user.user_id)
    ]


@router.get("/{workout_id}/edit", response_model=HistoryEditForm)
def edit_form(
    workout_id: UUID,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> HistoryEditForm:
    """Editable copy of a finished workout, with numbers as text."""
    workout = get_finished_workout(db, workout_id, user)
    return HistoryEditForm(workout_id=workout.id, exercises=to_editable(workout))


@router.put("/{workout_id}", response_model=WorkoutHistoryResponse)
def save_history_edit(
    workout_id: UUID,
    request: HistoryEditRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> WorkoutHistoryResponse:
    """Save an edited workout.

    The whole form is validated before anything is written, and only
    differences are persisted.

    Raises:
        400: Invalid name, reps or weight, or ids not in this workout
        404: Workout not found or not finished
    """
    workout = get_finished_workout(db, workout_id, user)

    try:
        changes = build_history_changes(workout, request.exercises)
    except ValueError as err:
        raise HTTPException(status_code=400, detail=str(err)) from err

    if changes.is_empty:
        return workout

    for exercise_id in changes.deleted_exercise_ids:
        delete_workout_exercise(db, exercise_id)
    for exercise_id, name in changes.renamed_exercises.items():
        update_workout_exercise_name(db, exercise_id, name)
    for set_id, change in changes.updated_sets.items():
        update_workout_set(db, set_id, change.reps, change.weight_kg)

    db.commit()
    logger.info(
        "Saved edit of workout %s: %d deleted, %d renamed, %d sets updated",
        workout_id,
        len(changes.deleted_exercise_ids),
        len(changes.renamed_exercises),
        len(changes.updated_sets),
    )
    return get_finished_workout(db, workout_id, user)
