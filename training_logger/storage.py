import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "github_config.json"
PROGRAMS_FILENAME = "programs.json"
WORKOUT_HISTORY_FILENAME = "workout_history.json"
MEASUREMENTS_FILENAME = "measurements.json"
PROGRESS_PICTURES_FILENAME = "progress_pictures.json"
FILE_LOCK = threading.Lock()


def data_dir() -> Path:
    return Path(os.getenv("TRAINING_LOGGER_DATA_DIR", "data"))


def data_path(filename: str) -> Path:
    return data_dir() / filename


def read_json_file(path: Path, default: Any) -> Any:
    with FILE_LOCK:
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text())
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring unreadable JSON file %s", path)
            return default
        except OSError as err:
            logger.warning("Could not read %s: %s", path, err)
            return default


def write_json_file(path: Path, payload: Any) -> None:
    with FILE_LOCK:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2))


def load_list(filename: str) -> list[dict[str, Any]]:
    raw = read_json_file(data_path(filename), [])
    if isinstance(raw, list):
        return [row for row in raw if isinstance(row, dict)]
    return []


def save_list(filename: str, items: list[dict[str, Any]]) -> None:
    write_json_file(data_path(filename), items)
