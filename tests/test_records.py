from datetime import date

import pytest
from fastapi import HTTPException

from training_logger.records import (
    measurement_filename,
    normalize_measurement,
    normalize_picture_entry,
    normalize_program,
    normalize_workout_edit,
    program_filename,
    search_programs,
    search_workouts,
    strip_export_fields,
    workout_from_program,
    workouts_filename,
)


def test_program_requires_name_and_exercises():
    with pytest.raises(HTTPException) as exc:
        normalize_program({"name": " ", "exercises": [{"name": "Squat"}]})
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException):
        normalize_program({"name": "Legs", "exercises": []})


def test_program_keeps_identity_on_update():
    first = normalize_program({"name": "Legs", "exercises": [{"name": "Squat", "sets": "4"}]})
    assert first["exercises"][0]["sets"] == 4
    updated = normalize_program({"name": "Leg Day", "exercises": [{"name": "Squat", "sets": 0}]}, existing=first)
    assert updated["id"] == first["id"]
    assert updated["created"] == first["created"]
    assert updated["exercises"][0]["sets"] == 1


def test_remote_file_names():
    assert program_filename({"name": "Push Day #1", "id": "abc"}) == "program-push-day--1-abc.json"
    assert measurement_filename({"date": "2024-01-02", "id": "9"}) == "measurement-2024-01-02-9.json"
    assert workouts_filename(date(2024, 5, 6)) == "workouts-2024-05-06.json"


def test_workout_from_program_expands_sets():
    program = {"id": "p", "name": "Legs", "exercises": [{"name": "Squat", "sets": 3, "reps": "5"}]}
    workout = workout_from_program(program)
    assert workout["programId"] == "p"
    assert workout["programName"] == "Legs"
    assert len(workout["exercises"][0]["sets"]) == 3
    assert workout["exercises"][0]["sets"][0] == {"weight": "", "reps": "", "rpe": "", "completed": False, "notes": ""}
    assert workout["videos"] == []


def test_measurement_requires_date_and_weight():
    with pytest.raises(HTTPException):
        normalize_measurement({"date": "2024-01-01"})
    with pytest.raises(HTTPException):
        normalize_measurement({"weight": 80})
    with pytest.raises(HTTPException):
        normalize_measurement({"date": "01/02/2024", "weight": 80})
    with pytest.raises(HTTPException):
        normalize_measurement({"date": "2024-01-01", "weight": "heavy"})


def test_measurement_optional_fields():
    m = normalize_measurement({"date": "2024-01-01", "weight": "80.5", "bodyFat": "", "muscleMass": "35"})
    assert m["weight"] == 80.5
    assert m["bodyFat"] is None
    assert m["muscleMass"] == 35.0


def test_picture_entry_needs_pictures():
    with pytest.raises(HTTPException):
        normalize_picture_entry({"date": "2024-01-01"}, [])


def test_workout_edit_normalizes_sets():
    existing = {"id": "w", "date": "2024-01-01T10:00:00Z", "exercises": [], "sessionNotes": ""}
    updated = normalize_workout_edit(
        existing,
        {"exercises": [{"name": " Squat ", "sets": [{"weight": 100, "reps": 5, "completed": 1}, "junk"]}], "duration": "90"},
    )
    assert updated["id"] == "w"
    assert updated["exercises"][0]["name"] == "Squat"
    assert updated["exercises"][0]["sets"][0]["completed"] is True
    assert updated["exercises"][0]["sets"][1]["completed"] is False
    assert updated["duration"] == 90
    assert "lastModified" in updated


def test_strip_export_fields():
    assert strip_export_fields({"id": 1, "exportedAt": "x", "version": "1.0"}) == {"id": 1}


def test_exercise_sets_default_only_when_missing():
    program = normalize_program(
        {"name": "Legs", "exercises": [{"name": "Squat"}, {"name": "Lunge", "sets": " "}, {"name": "Curl", "sets": -2}]}
    )
    assert [ex["sets"] for ex in program["exercises"]] == [3, 3, 1]


def test_search_matches_names_and_exercises():
    programs = [
        {"name": "Leg Day", "description": "", "exercises": [{"name": "Squat"}]},
        {"name": "Push", "description": "chest focus", "exercises": [{"name": "Bench"}]},
    ]
    assert search_programs(programs, " SQUAT ") == programs[:1]
    assert search_programs(programs, "chest") == programs[1:]
    assert search_programs(programs, "") == programs
    history = [{"programName": "Legs", "sessionNotes": "tired", "exercises": ["junk"]}]
    assert search_workouts(history, "tired") == history
    assert search_workouts(history, "bench") == []
