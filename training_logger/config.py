import logging
import os
from dataclasses import asdict, dataclass
from typing import Any

from training_logger.storage import CONFIG_FILENAME, data_path, read_json_file, write_json_file

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "data"
GITHUB_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0


@dataclass
class RemoteConfig:
    """Where and how the app persists to GitHub."""

    token: str = ""
    username: str = ""
    repo: str = ""
    folder: str = DEFAULT_FOLDER

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.username and self.repo)

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    def masked(self) -> dict[str, Any]:
        data = self.to_dict()
        data["token"] = "*" * 8 if self.token else ""
        data["configured"] = self.is_configured
        return data


def default_remote_config() -> RemoteConfig:
    return RemoteConfig()


def _clean_str(value: Any, strip: bool = True) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    return value.strip() if strip else value


def sanitize_remote_config(raw: Any, clean: bool = True) -> RemoteConfig:
    """Build a RemoteConfig from untrusted input.

    With ``clean`` the strings are trimmed and slashes around ``folder`` are
    dropped. Without it the stored values are taken as they are.
    """
    config = default_remote_config()
    if not isinstance(raw, dict):
        return config
    for key in ("token", "username", "repo"):
        value = _clean_str(raw.get(key), clean)
        if value is not None:
            setattr(config, key, value)
    folder = _clean_str(raw.get("folder"), clean)
    if folder and clean:
        folder = folder.strip("/")
    if folder:
        config.folder = folder
    return config


def load_remote_config() -> RemoteConfig:
    raw = read_json_file(data_path(CONFIG_FILENAME), {})
    if not raw:
        logger.info("No saved GitHub configuration, using defaults")
    return sanitize_remote_config(raw, clean=False)


def save_remote_config(payload: dict[str, Any]) -> RemoteConfig:
    config = sanitize_remote_config(payload)
    write_json_file(data_path(CONFIG_FILENAME), config.to_dict())
    logger.info("Saved GitHub configuration for %s/%s", config.username or "-", config.repo or "-")
    return config


def github_api_url() -> str:
    return os.getenv("GITHUB_API_URL", GITHUB_API_URL).rstrip("/")


def github_timeout() -> float:
    raw = os.getenv("GITHUB_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT
    return value if value > 0 else DEFAULT_TIMEOUT
