"""SQLAlchemy database models."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(UTC).replace(tzinfo=None)


class UserDB(Base):
    """Local user record, created on first sign-in."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    firebase_uid = Column(String, nullable=False, unique=True, index=True)
    email = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    profile = relationship(
        "ProfileDB", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<UserDB(id={self.id}, email={self.email})>"


class ProfileDB(Base):
    """Public-facing profile for a user.

    The primary key is the owning user's id. Only profiles with
    is_progress_public set can be found by search or compared against.
    """

    __tablename__ = "profiles"

    id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    display_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    is_progress_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("UserDB", back_populates="profile")

    def __repr__(self):
        return f"<ProfileDB(id={self.id}, display_name={self.display_name})>"


class ExerciseDB(Base):
    """An entry in a user's exercise library."""

    __tablename__ = "exercises"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_exercise_user_name"),)

    def __repr__(self):
        return f"<ExerciseDB(id={self.id}, name={self.name})>"


class WorkoutDB(Base):
    """A workout session.

    A workout with finished_at = NULL is the user's active session.
    """

    __tablename__ = "workouts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    started_at = Column(DateTime, nullable=False, default=utcnow)
    finished_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    exercises = relationship(
        "WorkoutExerciseDB",
        order_by="WorkoutExerciseDB.position",
        back_populates="workout",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<WorkoutDB(id={self.id}, started_at={self.started_at})>"


class WorkoutExerciseDB(Base):
    """An exercise performed within a workout (1-based position)."""

    __tablename__ = "workout_exercises"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workout_id = Column(
        UUID(as_uuid=True),
        ForeignKey("workouts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exercise_name = Column(String, nullable=False)
    position = Column(Integer, nullable=False)

    workout = relationship("WorkoutDB", back_populates="exercises")
    sets = relationship(
        "WorkoutSetDB",
        order_by="WorkoutSetDB.set_number",
        back_populates="workout_exercise",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return (
            f"<WorkoutExerciseDB(id={self.id}, name={self.exercise_name}, "
            f"position={self.position})>"
        )


class WorkoutSetDB(Base):
    """One recorded set: reps x weight (kg)."""

    __tablename__ = "workout_sets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workout_exercise_id = Column(
        UUID(as_uuid=True),
        ForeignKey("workout_exercises.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    set_number = Column(Integer, nullable=False)
    reps = Column(Integer, nullable=False)
    weight_kg = Column(Float, nullable=False)

    workout_exercise = relationship("WorkoutExerciseDB", back_populates="sets")

    def __repr__(self):
        return (
            f"<WorkoutSetDB(id={self.id}, set={self.set_number}, "
            f"reps={self.reps}, weight_kg={self.weight_kg})>"
        )
