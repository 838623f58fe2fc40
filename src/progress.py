"""Progress aggregation over workout history.

These functions work on already-loaded history (WorkoutHistoryResponse). They
back the progress charts directly. They also serve as the fallback when the
database's precomputed progress view or series function is unavailable.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from typedefs import (
    AggregatedWorkoutProgressRow,
    ExerciseProgressPoint,
    ExerciseProgressResponse,
    ProgressSeriesRow,
    RangeKey,
    WorkoutHistoryResponse,
    WorkoutHistorySet,
)

RANGE_DAYS: Dict[str, Optional[int]] = {
    "30d": 30,
    "90d": 90,
    "365d": 365,
    "all": None,
}

DEFAULT_RANGE: RangeKey = "90d"

# SQLSTATEs meaning "the precomputed read path is not there".
# PGRST106 is what a PostgREST gateway reports for an unexposed schema.
FALLBACK_SQLSTATES = {"PGRST106", "42P01", "42883", "3F000"}

FALLBACK_MESSAGE_FRAGMENTS = (
    "schema must be one of",
    "not in the schema cache",
    "permission denied for schema progress",
)

PRECOMPUTED_OBJECT_NAMES = ("aggregated_workout_progress", "get_progress_series")


def range_days(range_key: str) -> Optional[int]:
    """Number of days covered by a range key, or None for "all"."""
    if range_key not in RANGE_DAYS:
        raise ValueError(f"Unknown range: {range_key}")
    return RANGE_DAYS[range_key]


def range_cutoff(days: Optional[int], now: datetime) -> Optional[datetime]:
    if days is None:
        return None
    return now - timedelta(days=days)


def can_fallback_to_table_aggregation(code: Optional[str], message: str) -> bool:
    """Whether a database error means "precomputed progress is unavailable".

    Anything else is a real failure and should not be masked by a fallback.
    """
    normalized_code = (code or "").upper()
    lowered = message.lower()

    if normalized_code in FALLBACK_SQLSTATES:
        return True
    if any(fragment in lowered for fragment in FALLBACK_MESSAGE_FRAGMENTS):
        return True
    if "does not exist" in lowered and any(
        name in lowered for name in PRECOMPUTED_OBJECT_NAMES
    ):
        return True
    return False


def exercise_names(history: List[WorkoutHistoryResponse]) -> List[str]:
    """Distinct trimmed exercise names found in history, sorted case-insensitively."""
    names = set()
    for workout in history:
        for exercise in workout.exercises:
            trimmed = exercise.exercise_name.strip()
            if trimmed:
                names.add(trimmed)
    return sorted(names, key=lambda name: (name.lower(), name))


def _in_range(workout: WorkoutHistoryResponse, cutoff: Optional[datetime]) -> bool:
    return cutoff is None or workout.started_at >= cutoff


def _matching_sets(
    workout: WorkoutHistoryResponse, exercise: str
) -> List[WorkoutHistorySet]:
    target = exercise.strip().lower()
    return [
        s
        for e in workout.exercises
        if e.exercise_name.strip().lower() == target
        for s in e.sets
    ]


def _all_sets(workout: WorkoutHistoryResponse) -> List[WorkoutHistorySet]:
    return [s for e in workout.exercises for s in e.sets]


def exercise_progress(
    history: List[WorkoutHistoryResponse],
    exercise: str,
    cutoff: Optional[datetime],
) -> List[ExerciseProgressPoint]:
    """One point per workout that has sets of the given exercise, oldest first."""
    points = []
    for workout in history:
        if not _in_range(workout, cutoff):
            continue
        sets = _matching_sets(workout, exercise)
        if not sets:
            continue
        points.append(
            ExerciseProgressPoint(
                started_at=workout.started_at,
                max_weight=max(s.weight_kg for s in sets),
                total_volume=sum(s.reps * s.weight_kg for s in sets),
                total_reps=sum(s.reps for s in sets),
            )
        )
    return sorted(points, key=lambda p: p.started_at)


def summarize_exercise_progress(
    history: List[WorkoutHistoryResponse],
    exercise: Optional[str],
    range_key: RangeKey,
    now: datetime,
) -> ExerciseProgressResponse:
    """Series and headline numbers for the progress screen.

    With no exercise given, the first name from history is used.
    """
    if not exercise:
        names = exercise_names(history)
        exercise = names[0] if names else None

    points: List[ExerciseProgressPoint] = []
    if exercise:
        cutoff = range_cutoff(range_days(range_key), now)
        points = exercise_progress(history, exercise, cutoff)

    return ExerciseProgressResponse(
        exercise=exercise,
        range=range_key,
        points=points,
        best_weight=max((p.max_weight for p in points), default=0.0),
        total_volume=sum(p.total_volume for p in points),
        sessions=len(points),
    )


def aggregate_history_rows(
    user_id: UUID,
    history: List[WorkoutHistoryResponse],
    days: Optional[int],
    now: datetime,
) -> List[AggregatedWorkoutProgressRow]:
    """Per-workout totals across all exercises, oldest first.

    Mirrors the progress.aggregated_workout_progress view. Workouts without any
    sets are left out.
    """
    cutoff = range_cutoff(days, now)
    rows = []
    for workout in history:
        if not _in_range(workout, cutoff):
            continue
        sets = _all_sets(workout)
        if not sets:
            continue
        rows.append(
            AggregatedWorkoutProgressRow(
                user_id=user_id,
                workout_id=workout.id,
                workout_date=workout.started_at,
                exercise_count=sum(1 for e in workout.exercises if e.sets),
                total_reps=sum(s.reps for s in sets),
                total_volume=sum(s.reps * s.weight_kg for s in sets),
                max_weight=max(s.weight_kg for s in sets),
            )
        )
    return sorted(rows, key=lambda row: row.workout_date)


def bucket_progress_series(
    history: List[WorkoutHistoryResponse],
    exercise: str,
    days: Optional[int],
    now: datetime,
) -> List[ProgressSeriesRow]:
    """Daily buckets for one exercise, oldest first.

    Mirrors the get_progress_series database function.
    """
    cutoff = range_cutoff(days, now)
    buckets: Dict = {}
    for workout in history:
        if not _in_range(workout, cutoff):
            continue
        sets = _matching_sets(workout, exercise)
        if not sets:
            continue
        buckets.setdefault(workout.started_at.date(), []).extend(sets)

    return [
        ProgressSeriesRow(
            bucket_date=bucket_date,
            max_weight=max(s.weight_kg for s in sets),
            total_volume=sum(s.reps * s.weight_kg for s in sets),
            total_reps=sum(s.reps for s in sets),
        )
        for bucket_date, sets in sorted(buckets.items())
    ]
