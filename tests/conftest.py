import json

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeGitHubSession
from training_logger.config import RemoteConfig
from training_logger.github import GitHubClient
from training_logger.main import app
from training_logger.storage import CONFIG_FILENAME


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    path = tmp_path / "data"
    monkeypatch.setenv("TRAINING_LOGGER_DATA_DIR", str(path))
    monkeypatch.delenv("GITHUB_API_URL", raising=False)
    monkeypatch.delenv("GITHUB_TIMEOUT", raising=False)
    return path


@pytest.fixture
def save_config(data_dir):
    def _save(payload: dict) -> None:
        data_dir.mkdir(parents=True, exist_ok=True)
        (data_dir / CONFIG_FILENAME).write_text(json.dumps(payload))

    return _save


@pytest.fixture
def github():
    return FakeGitHubSession()


@pytest.fixture
def remote_config():
    return RemoteConfig(token="t", username="u", repo="r", folder="data")


@pytest.fixture
def github_client(github, remote_config):
    return GitHubClient(remote_config, session=github)


@pytest.fixture
def api(github):
    original = app.state.client_factory
    app.state.client_factory = lambda state: GitHubClient(state.remote_config, session=github)

    def _start() -> TestClient:
        return TestClient(app)

    yield _start
    app.state.client_factory = original
