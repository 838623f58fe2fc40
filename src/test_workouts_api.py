"""Tests for workout session API endpoints."""

from datetime import datetime
from uuid import UUID, uuid4

from deepdiff import DeepDiff

from models import ExerciseDB, WorkoutDB


def assert_exercises_equal(
    actual: list[dict],
    expected: list[dict],
    message: str = "Exercises do not match",
) -> None:
    """Assert that two exercise lists are identical using deepdiff.

    Provides clear diff output when assertions fail, making it easy to identify
    what changed unexpectedly.
    """
    diff = DeepDiff(expected, actual, ignore_order=False)
    assert not diff, f"{message}\n\nDifferences found:\n{diff.pretty()}"


def start(client) -> dict:
    response = client.post("/api/v1/workouts")
    assert response.status_code == 201
    return response.json()


def test_start_workout(client):
    data = start(client)

    assert "id" in data
    assert data["started_at"] is not None
    assert data["finished_at"] is None


def test_start_workout_while_one_is_active(client):
    start(client)

    response = client.post("/api/v1/workouts")
    assert response.status_code == 409
    assert response.json()["detail"] == "A workout is already in progress"


def test_start_workout_after_finishing(client):
    workout = start(client)
    client.post(f"/api/v1/workouts/{workout['id']}/finish")

    response = client.post("/api/v1/workouts")
    assert response.status_code == 201
    assert response.json()["id"] != workout["id"]


def test_active_workout_none(client):
    response = client.get("/api/v1/workouts/active")
    assert response.status_code == 404
    assert response.json()["detail"] == "No active workout"


def test_active_workout_ignores_finished(client, sample_workout):
    response = client.get("/api/v1/workouts/active")
    assert response.status_code == 404


def test_active_workout(client):
    workout = start(client)

    response = client.get("/api/v1/workouts/active")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == workout["id"]
    assert data["exercises"] == []


def test_active_workout_not_visible_to_other_users(client, make_workout, other_user):
    make_workout(other_user, datetime(2025, 12, 1, 9, 0, 0), finished=False)

    response = client.get("/api/v1/workouts/active")
    assert response.status_code == 404


def test_finish_exercise(client, db_session, test_user):
    workout = start(client)

    response = client.post(
        f"/api/v1/workouts/{workout['id']}/exercises",
        json={
            "name": "  Bench Press ",
            "sets": [
                {"reps": "8", "weight": "60"},
                {"reps": "6", "weight": "62,5"},
                {"reps": "", "weight": "62.5"},
            ],
        },
    )
    assert response.status_code == 201
    assert_exercises_equal(
        response.json()["exercises"],
        [
            {
                "name": "Bench Press",
                "sets": [
                    {"reps": 8, "weight_kg": 60.0},
                    {"reps": 6, "weight_kg": 62.5},
                ],
            }
        ],
    )

    library = db_session.query(ExerciseDB).filter(ExerciseDB.user_id == test_user.id).all()
    assert [e.name for e in library] == ["Bench Press"]


def test_finish_exercise_appends_in_order(client):
    workout = start(client)
    url = f"/api/v1/workouts/{workout['id']}/exercises"

    client.post(url, json={"name": "Squat", "sets": [{"reps": "5", "weight": "100"}]})
    response = client.post(
        url, json={"name": "Deadlift", "sets": [{"reps": "3", "weight": "140"}]}
    )

    assert response.status_code == 201
    assert [e["name"] for e in response.json()["exercises"]] == ["Squat", "Deadlift"]

    active = client.get("/api/v1/workouts/active").json()
    assert [e["name"] for e in active["exercises"]] == ["Squat", "Deadlift"]


def test_finish_exercise_does_not_duplicate_library_entry(
    client, db_session, test_user
):
    db_session.add(ExerciseDB(user_id=test_user.id, name="Bench Press"))
    db_session.commit()
    workout = start(client)

    response = client.post(
        f"/api/v1/workouts/{workout['id']}/exercises",
        json={"name": "bench press", "sets": [{"reps": "5", "weight": "70"}]},
    )
    assert response.status_code == 201

    library = db_session.query(ExerciseDB).filter(ExerciseDB.user_id == test_user.id).all()
    assert [e.name for e in library] == ["Bench Press"]


def test_finish_exercise_blank_name(client):
    workout = start(client)

    response = client.post(
        f"/api/v1/workouts/{workout['id']}/exercises",
        json={"name": "  ", "sets": [{"reps": "5", "weight": "70"}]},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Exercise name is required"


def test_finish_exercise_without_completed_sets(client):
    workout = start(client)

    response = client.post(
        f"/api/v1/workouts/{workout['id']}/exercises",
        json={
            "name": "Squat",
            "sets": [{"reps": "0", "weight": "100"}, {"reps": "", "weight": ""}],
        },
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Add at least one completed set"


def test_finish_exercise_on_finished_workout(client, sample_workout):
    response = client.post(
        f"/api/v1/workouts/{sample_workout.id}/exercises",
        json={"name": "Squat", "sets": [{"reps": "5", "weight": "100"}]},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot modify a finished workout"


def test_finish_exercise_workout_not_found(client):
    response = client.post(
        f"/api/v1/workouts/{uuid4()}/exercises",
        json={"name": "Squat", "sets": [{"reps": "5", "weight": "100"}]},
    )
    assert response.status_code == 404


def test_new_set_drafts(client):
    response = client.get("/api/v1/workouts/set-drafts")
    assert response.status_code == 200
    assert response.json() == {"drafts": [{"reps": "", "weight": ""}]}


def test_set_drafts_carries_weight_forward(client):
    response = client.post(
        "/api/v1/workouts/set-drafts",
        json={
            "drafts": [{"reps": "8", "weight": ""}],
            "index": 0,
            "field": "weight",
            "value": "60",
        },
    )
    assert response.status_code == 200
    assert response.json()["drafts"] == [
        {"reps": "8", "weight": "60"},
        {"reps": "", "weight": "60"},
    ]


def test_set_drafts_bad_index(client):
    response = client.post(
        "/api/v1/workouts/set-drafts",
        json={"drafts": [{"reps": "", "weight": ""}], "index": 3, "field": "reps", "value": "8"},
    )
    assert response.status_code == 400


def test_set_drafts_unknown_field(client):
    response = client.post(
        "/api/v1/workouts/set-drafts",
        json={"drafts": [{"reps": "", "weight": ""}], "index": 0, "field": "rpe", "value": "8"},
    )
    assert response.status_code == 422


def test_finish_workout(client, db_session):
    workout = start(client)

    response = client.post(f"/api/v1/workouts/{workout['id']}/finish")
    assert response.status_code == 200
    data = response.json()
    assert data["finished_at"] is not None

    stored = db_session.get(WorkoutDB, UUID(data["id"]))
    assert stored.finished_at is not None
    assert stored.finished_at >= stored.started_at


def test_finish_workout_twice(client):
    workout = start(client)
    client.post(f"/api/v1/workouts/{workout['id']}/finish")

    response = client.post(f"/api/v1/workouts/{workout['id']}/finish")
    assert response.status_code == 400
    assert response.json()["detail"] == "Workout has already been finished"


def test_finish_workout_not_found(client):
    response = client.post(f"/api/v1/workouts/{uuid4()}/finish")
    assert response.status_code == 404


def test_cancel_active_workout(client):
    workout = start(client)
    client.post(
        f"/api/v1/workouts/{workout['id']}/exercises",
        json={"name": "Squat", "sets": [{"reps": "5", "weight": "100"}]},
    )

    response = client.delete(f"/api/v1/workouts/{workout['id']}")
    assert response.status_code == 204

    assert client.get("/api/v1/workouts/active").status_code == 404
    assert client.delete(f"/api/v1/workouts/{workout['id']}").status_code == 404


def test_delete_other_users_workout(client, make_workout, other_user, db_session):
    theirs = make_workout(other_user, datetime(2025, 12, 1, 9, 0, 0))

    response = client.delete(f"/api/v1/workouts/{theirs.id}")
    assert response.status_code == 404
    assert db_session.get(WorkoutDB, theirs.id) is not None


def test_recent_workouts(client, make_workout, test_user):
    for day in range(1, 8):
        make_workout(
            test_user,
            datetime(2025, 12, day, 9, 0, 0),
            [("Squat", [(5, 100.0)])] * (day % 3),
        )

    response = client.get("/api/v1/workouts")
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 5
    assert [w["started_at"][:10] for w in data] == [
        "2025-12-07",
        "2025-12-06",
        "2025-12-05",
        "2025-12-04",
        "2025-12-03",
    ]
    assert [w["exercise_count"] for w in data] == [1, 0, 2, 1, 0]


def test_recent_workouts_limit(client, make_workout, test_user):
    for day in range(1, 4):
        make_workout(test_user, datetime(2025, 12, day, 9, 0, 0))

    response = client.get("/api/v1/workouts?limit=2")
    assert len(response.json()) == 2

    assert client.get("/api/v1/workouts?limit=0").status_code == 422


def test_finish_exercise_ignores_concurrent_library_insert(
    client, db_session, test_user, monkeypatch
):
    db_session.add(ExerciseDB(user_id=test_user.id, name="Bench Press"))
    db_session.commit()
    # The lookup misses, as if the row appeared after it ran
    monkeypatch.setattr("workouts_api.find_exercise_by_name", lambda *args: None)
    workout = start(client)

    response = client.post(
        f"/api/v1/workouts/{workout['id']}/exercises",
        json={"name": "Bench Press", "sets": [{"reps": "5", "weight": "70"}]},
    )
    assert response.status_code == 201
    assert [e["name"] for e in response.json()["exercises"]] == ["Bench Press"]

    library = db_session.query(ExerciseDB).filter(ExerciseDB.user_id == test_user.id).all()
    assert [e.name for e in library] == ["Bench Press"]
