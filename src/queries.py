"""Data-access functions, one per table or RPC operation.

Every function takes the session and, where rows are user-owned, the owning
user's id. Functions flush but never commit; committing is left to the
endpoint so that a request is one transaction.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, selectinload

from models import (
    ExerciseDB,
    ProfileDB,
    WorkoutDB,
    WorkoutExerciseDB,
    WorkoutSetDB,
)
from progress import (
    aggregate_history_rows,
    bucket_progress_series,
    can_fallback_to_table_aggregation,
    range_cutoff,
)
from typedefs import (
    AggregatedWorkoutProgressRow,
    CompletedSet,
    ProgressSeriesRow,
    WorkoutHistoryResponse,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

PUBLIC_PROFILE_SEARCH_LIMIT = 20

AGGREGATED_PROGRESS_SQL = """
    SELECT user_id, workout_id, workout_date, exercise_count,
           total_reps, total_volume, max_weight
    FROM progress.aggregated_workout_progress
    WHERE user_id = :user_id
"""

PROGRESS_SERIES_SQL = """
    SELECT bucket_date, max_weight, total_volume, total_reps
    FROM get_progress_series(:target_user_id, :target_exercise, :range_days)
"""


def sqlstate(err: DBAPIError) -> Optional[str]:
    """SQLSTATE reported by the driver, if any.

    psycopg2 exposes it as pgcode, psycopg 3 as sqlstate.
    """
    return getattr(err.orig, "pgcode", None) or getattr(err.orig, "sqlstate", None)


def is_unique_violation(err: IntegrityError) -> bool:
    return sqlstate(err) == UNIQUE_VIOLATION


# ========== Exercises ==========


def list_exercises(db: Session, user_id: UUID) -> List[ExerciseDB]:
    return (
        db.query(ExerciseDB)
        .filter(ExerciseDB.user_id == user_id)
        .order_by(ExerciseDB.name.asc())
        .all()
    )


def get_exercise(db: Session, exercise_id: UUID, user_id: UUID) -> Optional[ExerciseDB]:
    return (
        db.query(ExerciseDB)
        .filter(ExerciseDB.id == exercise_id, ExerciseDB.user_id == user_id)
        .first()
    )


def find_exercise_by_name(db: Session, user_id: UUID, name: str) -> Optional[ExerciseDB]:
    """Case-insensitive lookup in the user's library."""
    return (
        db.query(ExerciseDB)
        .filter(
            ExerciseDB.user_id == user_id,
            func.lower(ExerciseDB.name) == name.lower(),
        )
        .first()
    )


def create_exercise(db: Session, user_id: UUID, name: str) -> ExerciseDB:
    """Insert an exercise.

    Runs in a savepoint so a unique violation leaves the request's
    transaction usable.

    Raises:
        IntegrityError: If the user already has an exercise with this name
    """
    exercise = ExerciseDB(user_id=user_id, name=name)
    with db.begin_nested():
        db.add(exercise)
        db.flush()
    return exercise


def update_exercise_name(
    db: Session, exercise_id: UUID, user_id: UUID, name: str
) -> Optional[ExerciseDB]:
    """Rename an exercise. Returns None if it does not exist for this user.

    Raises:
        IntegrityError: If the new name collides with another exercise
    """
    exercise = get_exercise(db, exercise_id, user_id)
    if exercise is None:
        return None
    with db.begin_nested():
        exercise.name = name
        db.flush()
    return exercise


def delete_exercise(db: Session, exercise_id: UUID, user_id: UUID) -> bool:
    exercise = get_exercise(db, exercise_id, user_id)
    if exercise is None:
        return False
    db.delete(exercise)
    db.flush()
    return True


# ========== Workouts ==========


def create_workout(db: Session, user_id: UUID, started_at: datetime) -> WorkoutDB:
    workout = WorkoutDB(user_id=user_id, started_at=started_at)
    db.add(workout)
    db.flush()
    return workout


def get_workout(db: Session, workout_id: UUID, user_id: UUID) -> Optional[WorkoutDB]:
    return (
        db.query(WorkoutDB)
        .options(selectinload(WorkoutDB.exercises).selectinload(WorkoutExerciseDB.sets))
        .filter(WorkoutDB.id == workout_id, WorkoutDB.user_id == user_id)
        .first()
    )


def get_active_workout(db: Session, user_id: UUID) -> Optional[WorkoutDB]:
    """The user's unfinished workout, most recently started first."""
    return (
        db.query(WorkoutDB)
        .options(selectinload(WorkoutDB.exercises).selectinload(WorkoutExerciseDB.sets))
        .filter(WorkoutDB.user_id == user_id, WorkoutDB.finished_at.is_(None))
        .order_by(WorkoutDB.started_at.desc())
        .first()
    )


def finish_workout(db: Session, workout: WorkoutDB, finished_at: datetime) -> WorkoutDB:
    workout.finished_at = finished_at
    db.flush()
    return workout


def delete_workout(db: Session, workout_id: UUID, user_id: UUID) -> bool:
    workout = get_workout(db, workout_id, user_id)
    if workout is None:
        return False
    db.delete(workout)
    db.flush()
    return True


def list_recent_workouts(
    db: Session, user_id: UUID, limit: int
) -> List[Tuple[WorkoutDB, int]]:
    """Newest workouts with the number of exercises in each."""
    exercise_count = (
        db.query(func.count(WorkoutExerciseDB.id))
        .filter(WorkoutExerciseDB.workout_id == WorkoutDB.id)
        .correlate(WorkoutDB)
        .scalar_subquery()
    )
    return (
        db.query(WorkoutDB, exercise_count)
        .filter(WorkoutDB.user_id == user_id)
        .order_by(WorkoutDB.started_at.desc())
        .limit(limit)
        .all()
    )


def list_workout_history(db: Session, user_id: UUID) -> List[WorkoutDB]:
    """Finished workouts with exercises and sets, newest first."""
    return (
        db.query(WorkoutDB)
        .options(selectinload(WorkoutDB.exercises).selectinload(WorkoutExerciseDB.sets))
        .filter(WorkoutDB.user_id == user_id, WorkoutDB.finished_at.isnot(None))
        .order_by(WorkoutDB.started_at.desc())
        .all()
    )


def load_history(db: Session, user_id: UUID) -> List[WorkoutHistoryResponse]:
    return [
        WorkoutHistoryResponse.model_validate(workout)
        for workout in list_workout_history(db, user_id)
    ]


# ========== Workout exercises and sets ==========


def insert_workout_exercise(
    db: Session, workout_id: UUID, exercise_name: str, position: int
) -> WorkoutExerciseDB:
    workout_exercise = WorkoutExerciseDB(
        workout_id=workout_id, exercise_name=exercise_name, position=position
    )
    db.add(workout_exercise)
    db.flush()
    return workout_exercise


def get_workout_exercise(db: Session, workout_exercise_id: UUID) -> Optional[WorkoutExerciseDB]:
    return db.get(WorkoutExerciseDB, workout_exercise_id)


def update_workout_exercise_name(
    db: Session, workout_exercise_id: UUID, exercise_name: str
) -> Optional[WorkoutExerciseDB]:
    workout_exercise = get_workout_exercise(db, workout_exercise_id)
    if workout_exercise is None:
        return None
    workout_exercise.exercise_name = exercise_name
    db.flush()
    return workout_exercise


def delete_workout_exercise(db: Session, workout_exercise_id: UUID) -> bool:
    workout_exercise = get_workout_exercise(db, workout_exercise_id)
    if workout_exercise is None:
        return False
    db.delete(workout_exercise)
    db.flush()
    return True


def insert_workout_sets(
    db: Session, workout_exercise_id: UUID, sets: List[CompletedSet]
) -> List[WorkoutSetDB]:
    """Insert sets numbered 1..n in the given order."""
    rows = [
        WorkoutSetDB(
            workout_exercise_id=workout_exercise_id,
            set_number=index + 1,
            reps=s.reps,
            weight_kg=s.weight_kg,
        )
        for index, s in enumerate(sets)
    ]
    db.add_all(rows)
    db.flush()
    return rows


def update_workout_set(
    db: Session, workout_set_id: UUID, reps: int, weight_kg: float
) -> Optional[WorkoutSetDB]:
    workout_set = db.get(WorkoutSetDB, workout_set_id)
    if workout_set is None:
        return None
    workout_set.reps = reps
    workout_set.weight_kg = weight_kg
    db.flush()
    return workout_set


# ========== Profiles ==========


def get_profile(db: Session, user_id: UUID) -> Optional[ProfileDB]:
    return db.get(ProfileDB, user_id)


def upsert_profile(
    db: Session,
    user_id: UUID,
    display_name: Optional[str],
    avatar_url: Optional[str],
    is_progress_public: bool,
) -> ProfileDB:
    profile = get_profile(db, user_id)
    if profile is None:
        profile = ProfileDB(id=user_id)
        db.add(profile)
    profile.display_name = display_name
    profile.avatar_url = avatar_url
    profile.is_progress_public = is_progress_public
    db.flush()
    return profile


def search_public_profiles(
    db: Session, query: str, exclude_user_id: Optional[UUID] = None
) -> List[ProfileDB]:
    """Public profiles whose display name contains the query (case-insensitive)."""
    q = (
        db.query(ProfileDB)
        .filter(
            ProfileDB.is_progress_public.is_(True),
            ProfileDB.display_name.isnot(None),
            ProfileDB.display_name.icontains(query, autoescape=True),
        )
    )
    if exclude_user_id is not None:
        q = q.filter(ProfileDB.id != exclude_user_id)
    return q.order_by(ProfileDB.display_name.asc()).limit(PUBLIC_PROFILE_SEARCH_LIMIT).all()


# ========== Progress ==========


def list_aggregated_workout_progress(
    db: Session, user_id: UUID, days: Optional[int], now: datetime
) -> List[AggregatedWorkoutProgressRow]:
    """Per-workout aggregates from the progress view.

    Falls back to aggregating raw history when the view is missing or not
    readable.

    Raises:
        DBAPIError: On any database error other than an unavailable view
    """
    sql = AGGREGATED_PROGRESS_SQL
    params = {"user_id": str(user_id)}
    cutoff = range_cutoff(days, now)
    if cutoff is not None:
        sql += " AND workout_date >= :cutoff"
        params["cutoff"] = cutoff
    sql += " ORDER BY workout_date ASC"

    try:
        with db.begin_nested():
            rows = db.execute(text(sql), params).mappings().all()
    except DBAPIError as err:
        if not can_fallback_to_table_aggregation(sqlstate(err), str(err.orig)):
            raise
        logger.warning(
            "Aggregated progress view unavailable (%s), aggregating history instead",
            sqlstate(err),
        )
        return aggregate_history_rows(user_id, load_history(db, user_id), days, now)

    return [AggregatedWorkoutProgressRow.model_validate(dict(row)) for row in rows]


def get_progress_series(
    db: Session,
    target_user_id: UUID,
    target_exercise: str,
    days: Optional[int],
    now: datetime,
) -> List[ProgressSeriesRow]:
    """Daily series for one exercise from the get_progress_series function.

    Falls back to bucketing raw history when the function is missing.

    Raises:
        DBAPIError: On any database error other than an unavailable function
    """
    params = {
        "target_user_id": str(target_user_id),
        "target_exercise": target_exercise,
        "range_days": days,
    }
    try:
        with db.begin_nested():
            rows = db.execute(text(PROGRESS_SERIES_SQL), params).mappings().all()
    except DBAPIError as err:
        if not can_fallback_to_table_aggregation(sqlstate(err), str(err.orig)):
            raise
        logger.warning(
            "Progress series function unavailable (%s), bucketing history instead",
            sqlstate(err),
        )
        history = load_history(db, target_user_id)
        return bucket_progress_series(history, target_exercise, days, now)

    return [ProgressSeriesRow.model_validate(dict(row)) for row in rows]
