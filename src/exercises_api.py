"""REST API endpoints for the user's exercise library."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import AuthenticatedUser, get_or_create_user
from database import get_db
from queries import (
    create_exercise,
    delete_exercise,
    find_exercise_by_name,
    get_exercise,
    is_unique_violation,
    list_exercises,
    update_exercise_name,
)
from typedefs import ExerciseNameRequest, ExerciseResponse

router = APIRouter(prefix="/api/v1/exercises", tags=["exercises"])

# Built-in exercises, available to every user and not editable
DEFAULT_EXERCISE_NAMES = (
    "Bench Press",
    "Squat",
    "Deadlift",
    "Overhead Press",
    "Barbell Row",
    "Pull Up",
    "Lat Pulldown",
    "Leg Press",
    "Romanian Deadlift",
    "Incline Dumbbell Press",
    "Bicep Curl",
    "Tricep Pushdown",
)


def merge_exercise_names(library: List[str], defaults=DEFAULT_EXERCISE_NAMES) -> List[str]:
    """Library names plus built-ins, de-duplicated ignoring case.

    The first spelling seen wins, so a user's own spelling beats the built-in one.
    """
    seen = {}
    for name in list(library) + list(defaults):
        key = name.strip().lower()
        if key and key not in seen:
            seen[key] = name.strip()
    return sorted(seen.values(), key=lambda name: (name.lower(), name))


def clean_exercise_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail="Exercise name is required")
    return cleaned


@router.get("", response_model=List[ExerciseResponse])
def get_exercises(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[ExerciseResponse]:
    """List the authenticated user's exercise library, ordered by name."""
    return [ExerciseResponse.model_validate(e) for e in list_exercises(db, user.user_id)]


@router.get("/defaults", response_model=List[str])
def get_default_exercises() -> List[str]:
    """Built-in exercise names."""
    return list(DEFAULT_EXERCISE_NAMES)


@router.get("/names", response_model=List[str])
def get_exercise_names(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> List[str]:
    """Exercise names offered when adding an exercise to a workout."""
    library = [e.name for e in list_exercises(db, user.user_id)]
    return merge_exercise_names(library)


@router.post("", response_model=ExerciseResponse, status_code=201)
def add_exercise(
    request: ExerciseNameRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ExerciseResponse:
    """Add an exercise to the library.

    Raises:
        400: Name is blank
        409: An exercise with the same name (ignoring case) already exists
    """
    name = clean_exercise_name(request.name)

    if find_exercise_by_name(db, user.user_id, name):
        raise HTTPException(status_code=409, detail="Exercise already exists")

    try:
        exercise = create_exercise(db, user.user_id, name)
    except IntegrityError as err:
        if is_unique_violation(err):
            raise HTTPException(status_code=409, detail="Exercise already exists") from err
        raise

    db.commit()
    db.refresh(exercise)
    return ExerciseResponse.model_validate(exercise)


@router.patch("/{exercise_id}", response_model=ExerciseResponse)
def rename_exercise(
    exercise_id: UUID,
    request: ExerciseNameRequest,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> ExerciseResponse:
    """Rename an exercise. Renaming to the current name is a no-op."""
    name = clean_exercise_name(request.name)

    exercise = get_exercise(db, exercise_id, user.user_id)
    if not exercise:
        raise HTTPException(status_code=404, detail="Exercise not found")

    if name == exercise.name:
        return ExerciseResponse.model_validate(exercise)

    clash = find_exercise_by_name(db, user.user_id, name)
    if clash is not None and clash.id != exercise.id:
        raise HTTPException(status_code=409, detail="Exercise already exists")

    try:
        exercise = update_exercise_name(db, exercise_id, user.user_id, name)
    except IntegrityError as err:
        if is_unique_violation(err):
            raise HTTPException(status_code=409, detail="Exercise already exists") from err
        raise

    db.commit()
    db.refresh(exercise)
    return ExerciseResponse.model_validate(exercise)


@router.delete("/{exercise_id}", status_code=204)
def remove_exercise(
    exercise_id: UUID,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_or_create_user),
) -> None:
    """Delete an exercise from the library. Past workouts keep their names."""
    if not delete_exercise(db, exercise_id, user.user_id):
        raise HTTPException(status_code=404, detail="Exercise not found")
    db.commit()
