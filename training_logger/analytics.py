from datetime import date
from typing import Any


def _as_float(v: Any) -> float | None:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _as_int(v: Any) -> int | None:
    f = _as_float(v)
    if f is None:
        return None
    return int(f)


def _day(v: Any) -> str:
    return str(v or "")[:10]


def _matches(name: str, search: str) -> bool:
    return not search or search.lower() in name.lower()


def _exercises(workout: dict[str, Any]) -> list[dict[str, Any]]:
    exercises = workout.get("exercises")
    if not isinstance(exercises, list):
        return []
    return [ex for ex in exercises if isinstance(ex, dict)]


def _sets(exercise: dict[str, Any]) -> list[dict[str, Any]]:
    sets = exercise.get("sets")
    if not isinstance(sets, list):
        return []
    return [s for s in sets if isinstance(s, dict)]


def completed_sets(exercise: dict[str, Any]) -> list[tuple[float, int]]:
    out: list[tuple[float, int]] = []
    for s in _sets(exercise):
        if not s.get("completed"):
            continue
        weight = _as_float(s.get("weight"))
        reps = _as_int(s.get("reps"))
        if weight and reps:
            out.append((weight, reps))
    return out


def week_key(day: date) -> str:
    start = date(day.year, 1, 1)
    past_days = (day - start).days
    # Sunday-based weekday of Jan 1st
    start_weekday = (start.weekday() + 1) % 7
    week = -(-(past_days + start_weekday + 1) // 7)
    return f"{day.year}-W{week}"


def personal_records(history: list[dict[str, Any]], search: str = "") -> dict[str, dict[str, Any]]:
    records: dict[str, dict[str, Any]] = {}
    for workout in history:
        for exercise in _exercises(workout):
            name = str(exercise.get("name", ""))
            if not name or not _matches(name, search):
                continue
            rec = records.setdefault(name, {"maxWeight": 0.0, "maxVolume": 0.0, "maxReps": 0, "bestSet": None})
            for weight, reps in completed_sets(exercise):
                if weight > rec["maxWeight"]:
                    rec["maxWeight"] = weight
                    rec["bestSet"] = {"weight": weight, "reps": reps, "date": workout.get("date")}
                rec["maxVolume"] = max(rec["maxVolume"], weight * reps)
                rec["maxReps"] = max(rec["maxReps"], reps)
    return {name: rec for name, rec in records.items() if rec["bestSet"]}


def volume_by_day(history: list[dict[str, Any]], search: str = "") -> list[dict[str, Any]]:
    volume: dict[str, float] = {}
    for workout in history:
        total = 0.0
        for exercise in _exercises(workout):
            if not _matches(str(exercise.get("name", "")), search):
                continue
            total += sum(w * r for w, r in completed_sets(exercise))
        if total > 0:
            day = _day(workout.get("date"))
            volume[day] = volume.get(day, 0.0) + total
    return [{"date": d, "volume": volume[d]} for d in sorted(volume)]


def exercise_frequency(history: list[dict[str, Any]], search: str = "") -> dict[str, int]:
    counts: dict[str, int] = {}
    for workout in history:
        for exercise in _exercises(workout):
            name = str(exercise.get("name", ""))
            if name and _matches(name, search):
                counts[name] = counts.get(name, 0) + 1
    return counts


def strength_series(history: list[dict[str, Any]], search: str = "") -> dict[str, Any]:
    counts = exercise_frequency(history, search)
    if not counts:
        return {"exercise": None, "points": []}
    top = max(counts, key=lambda name: counts[name])
    best: dict[str, float] = {}
    for workout in history:
        match = next((ex for ex in _exercises(workout) if ex.get("name") == top), None)
        if not match:
            continue
        weights = [
            w
            for w in (_as_float(s.get("weight")) for s in _sets(match) if s.get("completed"))
            if w
        ]
        if weights:
            best[_day(workout.get("date"))] = max(weights)
    return {"exercise": top, "points": [{"date": d, "maxWeight": best[d]} for d in sorted(best)]}


def weekly_frequency(history: list[dict[str, Any]]) -> dict[str, int]:
    weeks: dict[str, int] = {}
    for workout in history:
        try:
            day = date.fromisoformat(_day(workout.get("date")))
        except ValueError:
            continue
        key = week_key(day)
        weeks[key] = weeks.get(key, 0) + 1
    return weeks


def measurement_series(measurements: list[dict[str, Any]]) -> list[dict[str, Any]]:
    rows = sorted(measurements, key=lambda m: str(m.get("date") or ""))
    return [
        {
            "date": m.get("date"),
            "weight": _as_float(m.get("weight")),
            "bodyFat": _as_float(m.get("bodyFat")),
            "muscleMass": _as_float(m.get("muscleMass")),
        }
        for m in rows
    ]


def compute_analytics(
    history: list[dict[str, Any]], measurements: list[dict[str, Any]], search: str = ""
) -> dict[str, Any]:
    search = search.strip().lower()
    weeks = weekly_frequency(history)
    return {
        "search": search,
        "workouts": len(history),
        "personal_records": personal_records(history, search),
        "volume": volume_by_day(history, search),
        "strength": strength_series(history, search),
        "frequency": {
            "exercises": exercise_frequency(history, search),
            "weekly": weeks,
            "average_per_week": round(len(history) / len(weeks), 1) if weeks else 0.0,
        },
        "measurements": measurement_series(measurements),
    }
