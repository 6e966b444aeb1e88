"""The five startup loaders.

Each loader pulls one collection into ``AppState``: GitHub first when the
remote config is complete, the local cache otherwise or when GitHub fails.
Loaders return a ``LoadOutcome`` so callers can report partial failures.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from training_logger import storage
from training_logger.analytics import compute_analytics
from training_logger.github import DATA_BRANCH, PROGRAMS_BRANCH, GitHubClient, GitHubError
from training_logger.records import (
    MEASUREMENT_PREFIX,
    PICTURES_PREFIX,
    PROGRAM_PREFIX,
    WORKOUTS_PREFIX,
    sort_by,
    strip_export_fields,
)
from training_logger.state import AppState

logger = logging.getLogger(__name__)

PROGRAMS_DIR = "programs"
MEASUREMENTS_DIR = "measurements"
PICTURES_DIR = "progress-pictures"

ClientFactory = Callable[[AppState], GitHubClient]


@dataclass
class LoadOutcome:
    name: str
    ok: bool
    source: str
    count: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "ok": self.ok, "source": self.source, "count": self.count, "error": self.error}


def default_client(state: AppState) -> GitHubClient:
    return GitHubClient(state.remote_config)


def _load_remote_records(client: GitHubClient, directory: str, prefix: str, branch: str) -> list[dict[str, Any]]:
    files = [
        f
        for f in client.list_dir(directory, branch)
        if str(f.get("name", "")).startswith(prefix) and str(f.get("name", "")).endswith(".json")
    ]
    out: list[dict[str, Any]] = []
    for f in files:
        name = str(f["name"])
        try:
            loaded = client.get_json(f"{directory}/{name}", branch)
        except GitHubError as err:
            logger.error("Error loading %s from GitHub: %s", name, err)
            continue
        if loaded and isinstance(loaded[0], dict):
            out.append(strip_export_fields(loaded[0]))
    return out


def _collection_loader(
    name: str,
    attr: str,
    cache_file: str,
    directory: str,
    prefix: str,
    branch: str,
    sort_key: str,
):
    def load(state: AppState, client_factory: ClientFactory = default_client) -> LoadOutcome:
        if not state.remote_config.is_configured:
            logger.info("GitHub not configured, using local cache for %s", name)
            items = storage.load_list(cache_file)
            setattr(state, attr, items)
            return LoadOutcome(name, True, "local", len(items))
        try:
            items = sort_by(_load_remote_records(client_factory(state), directory, prefix, branch), sort_key)
        except GitHubError as err:
            logger.error("Error loading %s from GitHub, falling back to local cache: %s", name, err)
            items = storage.load_list(cache_file)
            setattr(state, attr, items)
            return LoadOutcome(name, False, "local", len(items), str(err))
        setattr(state, attr, items)
        storage.save_list(cache_file, items)
        logger.info("Loaded %d %s from GitHub", len(items), name)
        return LoadOutcome(name, True, "github", len(items))

    load.__name__ = f"load_{attr}"
    return load


load_programs = _collection_loader(
    "programs", "programs", storage.PROGRAMS_FILENAME, PROGRAMS_DIR, PROGRAM_PREFIX, PROGRAMS_BRANCH, "created"
)
load_measurements = _collection_loader(
    "measurements",
    "measurements",
    storage.MEASUREMENTS_FILENAME,
    MEASUREMENTS_DIR,
    MEASUREMENT_PREFIX,
    DATA_BRANCH,
    "date",
)
load_progress_pictures = _collection_loader(
    "progress pictures",
    "progress_pictures",
    storage.PROGRESS_PICTURES_FILENAME,
    PICTURES_DIR,
    PICTURES_PREFIX,
    DATA_BRANCH,
    "date",
)


def load_workout_history(state: AppState, client_factory: ClientFactory = default_client) -> LoadOutcome:
    cached = storage.load_list(storage.WORKOUT_HISTORY_FILENAME)
    if not state.remote_config.is_configured:
        logger.info("GitHub not configured, using local cache for workout history")
        state.workout_history = cached
        return LoadOutcome("workout history", True, "local", len(cached))

    folder = state.remote_config.folder
    try:
        client = client_factory(state)
        files = [f for f in client.list_dir(folder, DATA_BRANCH) if str(f.get("name", "")).startswith(WORKOUTS_PREFIX)]
        if not files:
            # nothing uploaded yet: keep whatever this machine already has
            state.workout_history = cached
            return LoadOutcome("workout history", True, "local", len(cached))
        latest = max(files, key=lambda f: str(f.get("name", "")))
        loaded = client.get_json(f"{folder}/{latest['name']}", DATA_BRANCH)
    except GitHubError as err:
        logger.error("Error loading workout history from GitHub, falling back to local cache: %s", err)
        state.workout_history = cached
        return LoadOutcome("workout history", False, "local", len(cached), str(err))

    data = loaded[0].get("data") if loaded and isinstance(loaded[0], dict) else None
    if not isinstance(data, list):
        state.workout_history = cached
        return LoadOutcome("workout history", True, "local", len(cached))
    state.workout_history = [w for w in data if isinstance(w, dict)]
    storage.save_list(storage.WORKOUT_HISTORY_FILENAME, state.workout_history)
    logger.info("Loaded %d workouts from GitHub", len(state.workout_history))
    return LoadOutcome("workout history", True, "github", len(state.workout_history))


def update_analytics(state: AppState, search: str = "") -> LoadOutcome:
    state.analytics = compute_analytics(state.workout_history, state.measurements, search)
    return LoadOutcome("analytics", True, "computed", state.analytics["workouts"])


REMOTE_LOADERS = (
    load_programs,
    load_workout_history,
    load_measurements,
    load_progress_pictures,
)

DEFAULT_LOADERS = REMOTE_LOADERS + (update_analytics,)
