from datetime import date, datetime
from typing import List, Literal
from uuid import UUID

from pydantic import BaseModel

RangeKey = Literal["30d", "90d", "365d", "all"]


# ========== Exercise library ==========


class ExerciseNameRequest(BaseModel):
    """Create or rename an exercise in the library."""

    name: str


class ExerciseResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


# ========== Profiles ==========


class ProfileUpdateRequest(BaseModel):
    display_name: str | None = None
    avatar_url: str | None = None
    is_progress_public: bool = False


class ProfileResponse(BaseModel):
    id: UUID
    display_name: str | None = None
    avatar_url: str | None = None
    is_progress_public: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class PublicProfileResponse(BaseModel):
    """The subset of a profile visible to other users."""

    id: UUID
    display_name: str

    class Config:
        from_attributes = True


# ========== Session ==========


class SessionUser(BaseModel):
    user_id: UUID
    email: str
    provider: str | None = None
    created_at: datetime | None = None


class SessionResponse(BaseModel):
    authenticated: bool
    user: SessionUser | None = None


# ========== Active workout ==========


class SetDraft(BaseModel):
    """A row in the set-entry form. Values are kept as typed."""

    reps: str = ""
    weight: str = ""


class SetDraftUpdateRequest(BaseModel):
    drafts: List[SetDraft]
    index: int
    field: Literal["reps", "weight"]
    value: str


class SetDraftsResponse(BaseModel):
    drafts: List[SetDraft]


class CompletedSet(BaseModel):
    reps: int
    weight_kg: float


class LocalWorkoutExercise(BaseModel):
    name: str
    sets: List[CompletedSet]


class ActiveWorkoutResponse(BaseModel):
    id: UUID
    started_at: datetime
    exercises: List[LocalWorkoutExercise]


class FinishExerciseRequest(BaseModel):
    """Payload of the "Finish Exercise" step."""

    name: str
    sets: List[SetDraft]


class WorkoutResponse(BaseModel):
    id: UUID
    user_id: UUID
    started_at: datetime
    finished_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class WorkoutSummaryResponse(BaseModel):
    """Recent-workout list entry."""

    id: UUID
    started_at: datetime
    finished_at: datetime | None
    exercise_count: int


# ========== History ==========


class WorkoutHistorySet(BaseModel):
    id: UUID
    set_number: int
    reps: int
    weight_kg: float

    class Config:
        from_attributes = True


class WorkoutHistoryExercise(BaseModel):
    id: UUID
    exercise_name: str
    position: int
    sets: List[WorkoutHistorySet]

    class Config:
        from_attributes = True


class WorkoutHistoryResponse(BaseModel):
    """A workout with its exercises and sets."""

    id: UUID
    started_at: datetime
    finished_at: datetime | None
    exercises: List[WorkoutHistoryExercise]

    class Config:
        from_attributes = True


class EditableSet(BaseModel):
    id: UUID
    set_number: int
    reps: str
    weight_kg: str


class EditableHistoryExercise(BaseModel):
    id: UUID
    exercise_name: str
    sets: List[EditableSet]
    deleted: bool = False


class HistoryEditRequest(BaseModel):
    exercises: List[EditableHistoryExercise]


class HistoryEditForm(BaseModel):
    workout_id: UUID
    exercises: List[EditableHistoryExercise]


# ========== Progress ==========


class ExerciseProgressPoint(BaseModel):
    """Per-workout aggregate for one exercise."""

    started_at: datetime
    max_weight: float
    total_volume: float
    total_reps: int


class ExerciseProgressResponse(BaseModel):
    exercise: str | None
    range: RangeKey
    points: List[ExerciseProgressPoint]
    best_weight: float
    total_volume: float
    sessions: int


class AggregatedWorkoutProgressRow(BaseModel):
    user_id: UUID
    workout_id: UUID
    workout_date: datetime
    exercise_count: int
    total_reps: int
    total_volume: float
    max_weight: float


class ProgressSeriesRow(BaseModel):
    bucket_date: date
    max_weight: float
    total_volume: float
    total_reps: int


class ProgressCompareResponse(BaseModel):
    exercise: str
    range: RangeKey
    mine: List[ProgressSeriesRow]
    theirs: List[ProgressSeriesRow]
    compare_user: PublicProfileResponse
