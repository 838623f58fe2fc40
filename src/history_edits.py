"""Editing of past workouts.

A history edit starts from a text form built from the stored workout. It comes
back with changed names and numbers, and with some exercises flagged as
deleted. The form is validated as a whole and reduced to the minimal set of
writes.
"""

from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel

from typedefs import (
    EditableHistoryExercise,
    EditableSet,
    WorkoutHistoryResponse,
)
from workout_session import parse_reps, parse_weight


class SetChange(BaseModel):
    reps: int
    weight_kg: float


class HistoryChanges(BaseModel):
    """Writes needed to persist a history edit."""

    deleted_exercise_ids: List[UUID] = []
    renamed_exercises: Dict[UUID, str] = {}
    updated_sets: Dict[UUID, SetChange] = {}

    @property
    def is_empty(self) -> bool:
        return not (self.deleted_exercise_ids or self.renamed_exercises or self.updated_sets)


def format_weight(weight_kg: float) -> str:
    """Render a weight the way it is typed: 60.0 -> "60", 62.5 -> "62.5"."""
    if float(weight_kg).is_integer():
        return str(int(weight_kg))
    return repr(float(weight_kg))


def to_editable(workout: WorkoutHistoryResponse) -> List[EditableHistoryExercise]:
    """Build the edit form for a workout, exercises by position and sets by number."""
    exercises = sorted(workout.exercises, key=lambda e: e.position)
    return [
        EditableHistoryExercise(
            id=exercise.id,
            exercise_name=exercise.exercise_name,
            sets=[
                EditableSet(
                    id=s.id,
                    set_number=s.set_number,
                    reps=str(s.reps),
                    weight_kg=format_weight(s.weight_kg),
                )
                for s in sorted(exercise.sets, key=lambda s: s.set_number)
            ],
            deleted=False,
        )
        for exercise in exercises
    ]


def build_history_changes(
    workout: WorkoutHistoryResponse, edits: List[EditableHistoryExercise]
) -> HistoryChanges:
    """Validate an edit form against the stored workout and diff it.

    Exercises left out of the form are not touched.

    Raises:
        ValueError: On unknown ids or invalid values. Nothing should be
            written in that case.
    """
    stored = {exercise.id: exercise for exercise in workout.exercises}
    changes = HistoryChanges()

    for edit in edits:
        original = stored.get(edit.id)
        if original is None:
            raise ValueError(f"Exercise {edit.id} does not belong to this workout")

        if edit.deleted:
            changes.deleted_exercise_ids.append(edit.id)
            continue

        name = edit.exercise_name.strip()
        if not name:
            raise ValueError(f"Exercise name is required (was {original.exercise_name})")
        if name != original.exercise_name:
            changes.renamed_exercises[edit.id] = name

        stored_sets = {s.id: s for s in original.sets}
        for edit_set in edit.sets:
            stored_set = stored_sets.get(edit_set.id)
            if stored_set is None:
                raise ValueError(f"Set {edit_set.id} does not belong to {name}")

            reps = parse_reps(edit_set.reps)
            if reps is None:
                raise ValueError(
                    f"Set {stored_set.set_number} of {name} needs a positive whole "
                    "number of reps"
                )
            weight = parse_weight(edit_set.weight_kg)
            if weight is None:
                raise ValueError(
                    f"Set {stored_set.set_number} of {name} needs a weight of 0 kg or more"
                )

            if reps != stored_set.reps or weight != stored_set.weight_kg:
                changes.updated_sets[edit_set.id] = SetChange(reps=reps, weight_kg=weight)

    return changes
