#!/usr/bin/env python3
"""Script to populate the database with test exercises and workouts."""

import os
import sys
from datetime import timedelta

from dotenv import load_dotenv

# Add src to path so we can import our modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from database import SessionLocal
from models import (
    ExerciseDB,
    ProfileDB,
    UserDB,
    WorkoutDB,
    WorkoutExerciseDB,
    WorkoutSetDB,
    utcnow,
)

# Load environment variables
load_dotenv()

LIBRARY = ["Bench Press", "Squat", "Deadlift", "Cable Fly"]

# (days ago, [(exercise, [(reps, weight_kg), ...]), ...])
WORKOUTS = [
    (21, [("Squat", [(5, 90), (5, 90), (5, 90)]), ("Bench Press", [(8, 55), (8, 55)])]),
    (14, [("Deadlift", [(5, 120), (3, 130)]), ("Cable Fly", [(12, 15), (12, 15)])]),
    (10, [("Squat", [(5, 95), (5, 95), (4, 95)]), ("Bench Press", [(8, 57.5), (7, 57.5)])]),
    (5, [("Deadlift", [(5, 125), (3, 135)]), ("Bench Press", [(6, 60), (6, 60)])]),
    (2, [("Squat", [(5, 100), (5, 100)]), ("Bench Press", [(5, 62.5), (5, 62.5)])]),
]


def get_first_user(db):
    test_user = db.query(UserDB).first()
    if not test_user:
        print("No users found. Please create a test user first.")
        print("Use the Firebase Auth Emulator to create: test@example.com")
    return test_user


def create_test_exercises():
    """Fill the first user's exercise library."""
    db = SessionLocal()
    try:
        test_user = get_first_user(db)
        if not test_user:
            return

        existing = {
            e.name.lower()
            for e in db.query(ExerciseDB).filter(ExerciseDB.user_id == test_user.id)
        }
        added = [name for name in LIBRARY if name.lower() not in existing]
        db.add_all(ExerciseDB(user_id=test_user.id, name=name) for name in added)
        db.commit()
        print(f"Added {len(added)} exercises to the library of {test_user.email}")

    except Exception as e:
        print(f"Error populating exercises: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


def create_test_workouts():
    """Create finished workouts with exercises and sets over the last few weeks."""
    db = SessionLocal()
    try:
        test_user = get_first_user(db)
        if not test_user:
            return

        # Clear existing workouts for this user
        db.query(WorkoutDB).filter(WorkoutDB.user_id == test_user.id).delete()
        db.commit()
        print(f"Cleared existing workouts for user {test_user.email}")

        today = utcnow().replace(hour=9, minute=0, second=0, microsecond=0)
        workouts = []
        for days_ago, exercises in WORKOUTS:
            started_at = today - timedelta(days=days_ago)
            workout = WorkoutDB(
                user_id=test_user.id,
                started_at=started_at,
                finished_at=started_at + timedelta(minutes=75),
            )
            for position, (name, sets) in enumerate(exercises, start=1):
                workout_exercise = WorkoutExerciseDB(exercise_name=name, position=position)
                workout_exercise.sets = [
                    WorkoutSetDB(set_number=number, reps=reps, weight_kg=weight)
                    for number, (reps, weight) in enumerate(sets, start=1)
                ]
                workout.exercises.append(workout_exercise)
            workouts.append(workout)

        db.add_all(workouts)
        db.commit()

        print(f"\nCreated {len(workouts)} test workouts:")
        for workout in workouts:
            db.refresh(workout)
            names = ", ".join(e.exercise_name for e in workout.exercises)
            print(f"  - ID: {workout.id}, Started: {workout.started_at}, Exercises: {names}")

        print("\nDatabase populated successfully!")

    except Exception as e:
        print(f"Error populating database: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


def create_public_profile():
    """Give the first user a public profile so they show up in search."""
    db = SessionLocal()
    try:
        test_user = get_first_user(db)
        if not test_user:
            return

        profile = db.get(ProfileDB, test_user.id)
        if profile is None:
            profile = ProfileDB(id=test_user.id)
            db.add(profile)
        profile.display_name = test_user.email.split("@")[0]
        profile.is_progress_public = True
        db.commit()
        print(f"\nProfile of {test_user.email} is public as {profile.display_name!r}")

    except Exception as e:
        print(f"Error updating profile: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Populate database with test data")
    parser.add_argument(
        "--exercises",
        action="store_true",
        help="Add exercises to the test user's library",
    )
    parser.add_argument(
        "--workouts",
        action="store_true",
        help="Create finished test workouts",
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Make the test user's progress public",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Run all population functions",
    )

    args = parser.parse_args()

    # If no args, default to --all
    if not (args.exercises or args.workouts or args.profile or args.all):
        args.all = True

    if args.all or args.exercises:
        create_test_exercises()

    if args.all or args.workouts:
        create_test_workouts()

    if args.all or args.profile:
        create_public_profile()
