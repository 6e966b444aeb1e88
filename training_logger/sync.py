import logging
from datetime import date
from typing import Any, Callable

from training_logger import storage
from training_logger.github import (
    DATA_BRANCH,
    PICTURES_BRANCH,
    PROGRAMS_BRANCH,
    VIDEOS_BRANCH,
    GitHubClient,
    GitHubError,
)
from training_logger.loaders import MEASUREMENTS_DIR, PICTURES_DIR, PROGRAMS_DIR
from training_logger.records import (
    EXPORT_VERSION,
    measurement_filename,
    new_id,
    pictures_filename,
    program_filename,
    slugify,
    utc_now_iso,
    workouts_filename,
    wrap_for_export,
)
from training_logger.state import AppState

logger = logging.getLogger(__name__)


def push(state: AppState, client: GitHubClient, action: Callable[[GitHubClient], Any], what: str) -> dict[str, Any]:
    """Run a remote write and describe how it went. Local data is never rolled back."""
    if not state.remote_config.is_configured:
        return {"synced": False, "error": None}
    try:
        action(client)
    except GitHubError as err:
        logger.error("Failed to sync %s to GitHub: %s", what, err)
        return {"synced": False, "error": str(err)}
    return {"synced": True, "error": None}


def cache_programs(state: AppState) -> None:
    storage.save_list(storage.PROGRAMS_FILENAME, state.programs)


def cache_workouts(state: AppState) -> None:
    storage.save_list(storage.WORKOUT_HISTORY_FILENAME, state.workout_history)


def cache_measurements(state: AppState) -> None:
    storage.save_list(storage.MEASUREMENTS_FILENAME, state.measurements)


def cache_pictures(state: AppState) -> None:
    storage.save_list(storage.PROGRESS_PICTURES_FILENAME, state.progress_pictures)


def cache_all(state: AppState) -> None:
    cache_programs(state)
    cache_workouts(state)
    cache_measurements(state)
    cache_pictures(state)


def save_program(client: GitHubClient, program: dict[str, Any]) -> None:
    client.put_json(
        f"{PROGRAMS_DIR}/{program_filename(program)}",
        wrap_for_export(program),
        PROGRAMS_BRANCH,
        f"program: {program.get('name')}",
    )


def delete_program(client: GitHubClient, program: dict[str, Any]) -> None:
    client.delete_file(f"{PROGRAMS_DIR}/{program_filename(program)}", PROGRAMS_BRANCH, f"program: {program.get('name')}")


def save_measurement(client: GitHubClient, measurement: dict[str, Any]) -> None:
    client.put_json(
        f"{MEASUREMENTS_DIR}/{measurement_filename(measurement)}",
        wrap_for_export(measurement),
        DATA_BRANCH,
        f"measurement: {measurement.get('date')}",
    )


def delete_measurement(client: GitHubClient, measurement: dict[str, Any]) -> None:
    client.delete_file(
        f"{MEASUREMENTS_DIR}/{measurement_filename(measurement)}", DATA_BRANCH, f"measurement: {measurement.get('date')}"
    )


def save_picture_entry(client: GitHubClient, entry: dict[str, Any]) -> None:
    client.put_json(
        f"{PICTURES_DIR}/{pictures_filename(entry)}",
        wrap_for_export(entry),
        DATA_BRANCH,
        f"progress pictures: {entry.get('date')}",
    )


def delete_picture_entry(client: GitHubClient, entry: dict[str, Any]) -> None:
    client.delete_file(
        f"{PICTURES_DIR}/{pictures_filename(entry)}", DATA_BRANCH, f"progress pictures: {entry.get('date')}"
    )


def save_workout_history(client: GitHubClient, state: AppState, today: date | None = None) -> None:
    day = today or date.today()
    payload = {
        "type": "workouts",
        "data": state.workout_history,
        "lastUpdated": utc_now_iso(),
        "version": EXPORT_VERSION,
    }
    client.put_json(f"{state.remote_config.folder}/{workouts_filename(day)}", payload, DATA_BRANCH, "workouts data")


def _upload_name(filename: str) -> str:
    stem, dot, ext = filename.rpartition(".")
    if not dot:
        stem, ext = filename, "bin"
    return f"{date.today().isoformat()}-{new_id()[:8]}-{slugify(stem)}.{ext.lower()}"


def upload_picture(client: GitHubClient, filename: str, content: bytes) -> str:
    path = f"{PICTURES_BRANCH}/{_upload_name(filename)}"
    return client.put_binary(path, content, PICTURES_BRANCH, f"progress picture {filename}")


def upload_video(client: GitHubClient, filename: str, content: bytes) -> str:
    path = f"videos/{_upload_name(filename)}"
    return client.put_binary(path, content, VIDEOS_BRANCH, f"workout video {filename}")


def sync_all(state: AppState, client: GitHubClient) -> dict[str, Any]:
    success = 0
    errors: list[str] = []

    def attempt(label: str, action: Callable[[], Any]) -> None:
        nonlocal success
        try:
            action()
            success += 1
        except GitHubError as err:
            logger.error("Sync of %s failed: %s", label, err)
            errors.append(f"{label}: {err}")

    for program in state.programs:
        attempt(f"program {program.get('name')}", lambda p=program: save_program(client, p))
    if state.workout_history:
        attempt("workout history", lambda: save_workout_history(client, state))
    for measurement in state.measurements:
        attempt(f"measurement {measurement.get('date')}", lambda m=measurement: save_measurement(client, m))
    for entry in state.progress_pictures:
        attempt(f"progress pictures {entry.get('date')}", lambda e=entry: save_picture_entry(client, e))
    return {"ok": not errors, "synced": success, "failed": len(errors), "errors": errors}
