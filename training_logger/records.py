import re
from datetime import date, datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import HTTPException

EXPORT_VERSION = "1.0"
PROGRAM_PREFIX = "program-"
MEASUREMENT_PREFIX = "measurement-"
PICTURES_PREFIX = "progress-pictures-"
WORKOUTS_PREFIX = "workouts-"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds") + "Z"


def new_id() -> str:
    return str(uuid4())


def slugify(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "-", name).lower()


def program_filename(program: dict[str, Any]) -> str:
    return f"{PROGRAM_PREFIX}{slugify(str(program.get('name', '')))}-{program.get('id')}.json"


def measurement_filename(measurement: dict[str, Any]) -> str:
    return f"{MEASUREMENT_PREFIX}{measurement.get('date')}-{measurement.get('id')}.json"


def pictures_filename(entry: dict[str, Any]) -> str:
    return f"{PICTURES_PREFIX}{entry.get('date')}-{entry.get('id')}.json"


def workouts_filename(day: date) -> str:
    return f"{WORKOUTS_PREFIX}{day.isoformat()}.json"


def wrap_for_export(record: dict[str, Any]) -> dict[str, Any]:
    return {**record, "exportedAt": utc_now_iso(), "version": EXPORT_VERSION}


def strip_export_fields(content: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in content.items() if k not in {"exportedAt", "version"}}


def index_of(items: list[dict[str, Any]], record_id: str) -> int:
    return next((i for i, row in enumerate(items) if str(row.get("id")) == str(record_id)), -1)


def _parse_date(value: Any, field: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail=f"{field} is required (YYYY-MM-DD).")
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError as err:
        raise HTTPException(status_code=400, detail="Invalid date format, use YYYY-MM-DD.") from err


def _optional_float(value: Any, field: str) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as err:
        raise HTTPException(status_code=400, detail=f"{field} must be numeric.") from err


def normalize_exercise(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise HTTPException(status_code=400, detail="Each exercise must be an object.")
    name = str(raw.get("name", "")).strip()
    if not name:
        raise HTTPException(status_code=400, detail="Exercise name is required.")
    try:
        raw_sets = raw.get("sets")
        sets = 3 if raw_sets is None or str(raw_sets).strip() == "" else int(raw_sets)
    except (TypeError, ValueError) as err:
        raise HTTPException(status_code=400, detail="Exercise sets must be a whole number.") from err
    return {
        "name": name,
        "sets": max(1, sets),
        "reps": str(raw.get("reps", "")).strip(),
        "weight": str(raw.get("weight", "")).strip(),
        "notes": str(raw.get("notes", "")).strip(),
    }


def normalize_program(payload: dict[str, Any], existing: dict[str, Any] | None = None) -> dict[str, Any]:
    name = str(payload.get("name", "")).strip()
    if not name:
        raise HTTPException(status_code=400, detail="Program name is required.")
    raw_exercises = payload.get("exercises", [])
    if not isinstance(raw_exercises, list) or not raw_exercises:
        raise HTTPException(status_code=400, detail="Add at least one exercise.")
    base = existing or {}
    return {
        "id": base.get("id") or new_id(),
        "name": name,
        "description": str(payload.get("description", "")).strip(),
        "exercises": [normalize_exercise(ex) for ex in raw_exercises],
        "created": base.get("created") or utc_now_iso(),
        "lastUsed": base.get("lastUsed"),
    }


def blank_set() -> dict[str, Any]:
    return {"weight": "", "reps": "", "rpe": "", "completed": False, "notes": ""}


def workout_from_program(program: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": new_id(),
        "programId": program.get("id"),
        "programName": program.get("name"),
        "date": utc_now_iso(),
        "exercises": [
            {
                **ex,
                "sets": [blank_set() for _ in range(int(ex.get("sets", 1) or 1))],
            }
            for ex in program.get("exercises", [])
        ],
        "sessionNotes": "",
        "videos": [],
    }


def normalize_set(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        return blank_set()
    return {
        "weight": raw.get("weight", ""),
        "reps": raw.get("reps", ""),
        "rpe": raw.get("rpe", ""),
        "completed": bool(raw.get("completed", False)),
        "notes": str(raw.get("notes", "") or ""),
    }


def normalize_workout_edit(existing: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    updated = {**existing}
    if "date" in payload:
        updated["date"] = _parse_date(payload.get("date"), "date")
    if "sessionNotes" in payload:
        updated["sessionNotes"] = str(payload.get("sessionNotes") or "")
    if "exercises" in payload:
        raw_exercises = payload.get("exercises")
        if not isinstance(raw_exercises, list):
            raise HTTPException(status_code=400, detail="exercises must be a list.")
        exercises = []
        for raw in raw_exercises:
            if not isinstance(raw, dict) or not str(raw.get("name", "")).strip():
                raise HTTPException(status_code=400, detail="Exercise name is required.")
            sets = raw.get("sets", [])
            exercises.append(
                {
                    **raw,
                    "name": str(raw["name"]).strip(),
                    "sets": [normalize_set(s) for s in sets] if isinstance(sets, list) else [],
                    "notes": str(raw.get("notes", "") or ""),
                }
            )
        updated["exercises"] = exercises
    if "videos" in payload and isinstance(payload.get("videos"), list):
        updated["videos"] = [v for v in payload["videos"] if isinstance(v, dict)]
    if "duration" in payload:
        try:
            updated["duration"] = max(0, int(payload.get("duration") or 0))
        except (TypeError, ValueError) as err:
            raise HTTPException(status_code=400, detail="duration must be a whole number of seconds.") from err
    updated["lastModified"] = utc_now_iso()
    return updated


def normalize_measurement(payload: dict[str, Any], existing: dict[str, Any] | None = None) -> dict[str, Any]:
    base = existing or {}
    measured_on = _parse_date(payload.get("date"), "date")
    weight = _optional_float(payload.get("weight"), "weight")
    if weight is None:
        raise HTTPException(status_code=400, detail="Please enter at least date and weight.")
    if weight <= 0:
        raise HTTPException(status_code=400, detail="weight must be positive.")
    return {
        "id": base.get("id") or new_id(),
        "date": measured_on,
        "weight": weight,
        "bodyFat": _optional_float(payload.get("bodyFat"), "bodyFat"),
        "muscleMass": _optional_float(payload.get("muscleMass"), "muscleMass"),
        "created": base.get("created") or utc_now_iso(),
    }


def picture_ref(name: str, size: int, content_type: str, github_url: str | None) -> dict[str, Any]:
    return {"name": name, "size": size, "type": content_type, "githubUrl": github_url}


def normalize_picture_entry(
    payload: dict[str, Any], pictures: list[dict[str, Any]], existing: dict[str, Any] | None = None
) -> dict[str, Any]:
    base = existing or {}
    if not pictures:
        raise HTTPException(status_code=400, detail="Add at least one picture.")
    return {
        "id": base.get("id") or new_id(),
        "date": _parse_date(payload.get("date"), "date"),
        "pictures": pictures,
        "notes": str(payload.get("notes", "") or "").strip(),
        "created": base.get("created") or utc_now_iso(),
    }


def sort_by(items: list[dict[str, Any]], key: str) -> list[dict[str, Any]]:
    return sorted(items, key=lambda row: str(row.get(key) or ""))


def _exercise_names(record: dict[str, Any]) -> list[str]:
    exercises = record.get("exercises")
    if not isinstance(exercises, list):
        return []
    return [str(ex.get("name", "")) for ex in exercises if isinstance(ex, dict)]


def _search(items: list[dict[str, Any]], query: str, fields: tuple[str, ...]) -> list[dict[str, Any]]:
    needle = query.strip().lower()
    if not needle:
        return items
    out = []
    for item in items:
        text = " ".join([str(item.get(f) or "") for f in fields] + _exercise_names(item))
        if needle in text.lower():
            out.append(item)
    return out


def search_programs(programs: list[dict[str, Any]], query: str) -> list[dict[str, Any]]:
    return _search(programs, query, ("name", "description"))


def search_workouts(history: list[dict[str, Any]], query: str) -> list[dict[str, Any]]:
    return _search(history, query, ("programName", "date", "sessionNotes"))
