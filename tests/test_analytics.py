from datetime import date

from training_logger.analytics import (
    compute_analytics,
    exercise_frequency,
    personal_records,
    strength_series,
    volume_by_day,
    week_key,
)


def workout(day, *exercises):
    return {"date": f"{day}T10:00:00Z", "exercises": list(exercises)}


def exercise(name, *sets):
    return {"name": name, "sets": [{"weight": w, "reps": r, "completed": c} for w, r, c in sets]}


HISTORY = [
    workout("2024-01-01", exercise("Squat", ("100", "5", True), ("110", "3", True), ("120", "1", False))),
    workout("2024-01-03", exercise("Squat", ("115", "3", True)), exercise("Bench Press", ("80", "8", True))),
    workout("2024-01-08", exercise("Bench Press", ("", "8", True), ("85", "5", True))),
]


def test_personal_records_ignore_incomplete_sets():
    records = personal_records(HISTORY)
    assert records["Squat"]["maxWeight"] == 115.0
    assert records["Squat"]["bestSet"] == {"weight": 115.0, "reps": 3, "date": "2024-01-03T10:00:00Z"}
    assert records["Squat"]["maxVolume"] == 500.0
    assert records["Squat"]["maxReps"] == 5
    assert records["Bench Press"]["maxWeight"] == 85.0


def test_personal_records_search_filter():
    assert list(personal_records(HISTORY, "bench")) == ["Bench Press"]


def test_volume_by_day():
    assert volume_by_day(HISTORY) == [
        {"date": "2024-01-01", "volume": 830.0},
        {"date": "2024-01-03", "volume": 985.0},
        {"date": "2024-01-08", "volume": 425.0},
    ]


def test_strength_series_tracks_most_frequent_exercise():
    history = HISTORY + [workout("2024-01-10", exercise("Bench Press", ("90", "1", True)))]
    series = strength_series(history)
    assert series["exercise"] == "Bench Press"
    assert series["points"] == [
        {"date": "2024-01-03", "maxWeight": 80.0},
        {"date": "2024-01-08", "maxWeight": 85.0},
        {"date": "2024-01-10", "maxWeight": 90.0},
    ]


def test_strength_series_empty():
    assert strength_series([]) == {"exercise": None, "points": []}


def test_exercise_frequency():
    assert exercise_frequency(HISTORY) == {"Squat": 2, "Bench Press": 2}


def test_week_key_sunday_based():
    # 2024-01-01 is a Monday
    assert week_key(date(2024, 1, 1)) == "2024-W1"
    assert week_key(date(2024, 1, 6)) == "2024-W1"
    assert week_key(date(2024, 1, 7)) == "2024-W2"


def test_compute_analytics_shape():
    result = compute_analytics(HISTORY, [{"date": "2024-01-02", "weight": 80, "bodyFat": None}], search="  SQUAT ")
    assert result["search"] == "squat"
    assert result["workouts"] == 3
    assert list(result["personal_records"]) == ["Squat"]
    assert result["frequency"]["weekly"] == {"2024-W1": 2, "2024-W2": 1}
    assert result["frequency"]["average_per_week"] == 1.5
    assert result["measurements"] == [{"date": "2024-01-02", "weight": 80.0, "bodyFat": None, "muscleMass": None}]


def test_loosely_shaped_exercises_are_skipped():
    history = HISTORY + [
        {"date": "2024-01-09", "exercises": ["Squat", {"name": "Squat", "sets": "x"}]},
        {"date": "2024-01-10", "exercises": "Squat"},
    ]
    assert personal_records(history)["Squat"]["maxWeight"] == 115.0
    assert volume_by_day(history) == volume_by_day(HISTORY)
    assert exercise_frequency(history) == {"Squat": 3, "Bench Press": 2}
    assert strength_series(history)["exercise"] == "Squat"
