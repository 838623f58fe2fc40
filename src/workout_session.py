"""Set-entry draft handling for the active workout.

The set form is a list of free-text rows. A new empty row appears as soon as
the last row is filled in, carrying the last weight forward. On "Finish
Exercise" the rows that hold a valid set are converted into CompletedSets.
"""

import math
import re
from typing import List, Optional

from models import WorkoutDB
from typedefs import (
    ActiveWorkoutResponse,
    CompletedSet,
    LocalWorkoutExercise,
    SetDraft,
)

# Plain ASCII decimal, optionally signed, with an optional exponent
NUMBER_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


def initial_set_drafts() -> List[SetDraft]:
    return [SetDraft(reps="", weight="")]


def parse_number(value: str) -> Optional[float]:
    """Parse user input as a finite number, accepting a decimal comma.

    Returns None for blank or non-numeric input.
    """
    text = value.strip().replace(",", ".")
    if not NUMBER_PATTERN.fullmatch(text):
        return None
    number = float(text)
    if not math.isfinite(number):
        return None
    return number


def parse_reps(value: str) -> Optional[int]:
    """Parse a positive whole number of reps, or None."""
    number = parse_number(value)
    if number is None or number <= 0 or not number.is_integer():
        return None
    return int(number)


def parse_weight(value: str) -> Optional[float]:
    """Parse a non-negative weight in kg, or None."""
    number = parse_number(value)
    if number is None or number < 0:
        return None
    return number


def is_filled(draft: SetDraft) -> bool:
    return draft.reps.strip() != "" and draft.weight.strip() != ""


def update_set_draft(
    drafts: List[SetDraft], index: int, field: str, value: str
) -> List[SetDraft]:
    """Return a new draft list with one field of one row replaced.

    Filling in the last row appends a fresh row that keeps the same weight.

    Raises:
        ValueError: If index is out of range or field is unknown
    """
    if field not in ("reps", "weight"):
        raise ValueError(f"Unknown set field: {field}")
    if index < 0 or index >= len(drafts):
        raise ValueError(f"Set row {index} does not exist")

    updated = [
        draft.model_copy(update={field: value}) if i == index else draft.model_copy()
        for i, draft in enumerate(drafts)
    ]

    last = updated[-1]
    if index == len(updated) - 1 and is_filled(last):
        updated.append(SetDraft(reps="", weight=last.weight.strip()))

    return updated


def completed_sets_from_drafts(drafts: List[SetDraft]) -> List[CompletedSet]:
    """Keep only the rows that describe a valid set, in order."""
    completed = []
    for draft in drafts:
        if not is_filled(draft):
            continue
        reps = parse_reps(draft.reps)
        weight = parse_weight(draft.weight)
        if reps is None or weight is None:
            continue
        completed.append(CompletedSet(reps=reps, weight_kg=weight))
    return completed


def to_active_workout(workout: WorkoutDB) -> ActiveWorkoutResponse:
    """Shape an unfinished workout the way the workout screen shows it."""
    return ActiveWorkoutResponse(
        id=workout.id,
        started_at=workout.started_at,
        exercises=[
            LocalWorkoutExercise(
                name=exercise.exercise_name,
                sets=[
                    CompletedSet(reps=s.reps, weight_kg=s.weight_kg)
                    for s in exercise.sets
                ],
            )
            for exercise in workout.exercises
        ],
    )
