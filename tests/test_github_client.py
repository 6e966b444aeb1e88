import base64
import json

import pytest

from training_logger.config import RemoteConfig
from training_logger.github import DATA_BRANCH, GitHubClient, GitHubError


def test_requests_carry_token_and_accept_headers(github_client, github, monkeypatch):
    captured = {}
    original = github.request

    def spy(method, url, headers=None, **kwargs):
        captured.update(headers)
        return original(method, url, headers=headers, **kwargs)

    monkeypatch.setattr(github, "request", spy)
    github_client.branch_exists("main")
    assert captured["Authorization"] == "token t"
    assert captured["Accept"] == "application/vnd.github.v3+json"


def test_ensure_branch_creates_missing_branch_from_main(github_client, github):
    assert github_client.ensure_branch(DATA_BRANCH) is True
    assert github.branches[DATA_BRANCH] == "base-sha"
    assert "POST" in github.methods()


def test_ensure_branch_existing_does_not_create(github_client, github):
    github.branches[DATA_BRANCH] = "x"
    assert github_client.ensure_branch(DATA_BRANCH) is True
    assert "POST" not in github.methods()


def test_ensure_branch_without_main_fails(github_client, github):
    del github.branches["main"]
    assert github_client.ensure_branch(DATA_BRANCH) is False


def test_list_dir_missing_directory_is_empty(github_client):
    assert github_client.list_dir("programs", DATA_BRANCH) == []


def test_list_dir_sends_ref_and_cache_buster(github_client, github):
    github.seed_json(DATA_BRANCH, "measurements/a.json", {})
    entries = github_client.list_dir("measurements", DATA_BRANCH)
    assert [e["name"] for e in entries] == ["a.json"]
    params = github.calls[-1][2]
    assert params["ref"] == DATA_BRANCH
    assert "_cb" in params


def test_put_json_creates_then_updates(github_client, github):
    github_client.put_json("data/x.json", {"n": 1}, DATA_BRANCH, "x")
    github_client.put_json("data/x.json", {"n": 2}, DATA_BRANCH, "x")
    assert github.read_json(DATA_BRANCH, "data/x.json") == {"n": 2}
    puts = [c for c in github.calls if c[0] == "PUT"]
    assert puts[0][3]["message"] == "Add x"
    assert "sha" not in puts[0][3]
    assert puts[1][3]["message"] == "Update x"
    assert puts[1][3]["sha"]


def test_get_json_decodes_content(github_client, github):
    github.seed_json(DATA_BRANCH, "data/x.json", {"hello": "world"})
    payload, sha = github_client.get_json("data/x.json", DATA_BRANCH)
    assert payload == {"hello": "world"}
    assert sha.startswith("sha-")
    assert github_client.get_json("data/missing.json", DATA_BRANCH) is None


def test_get_json_rejects_garbage(github_client, github):
    github.files[(DATA_BRANCH, "data/bad.json")] = (b"not json", "sha-x")
    with pytest.raises(GitHubError):
        github_client.get_json("data/bad.json", DATA_BRANCH)


def test_delete_file(github_client, github):
    github.seed_json(DATA_BRANCH, "data/x.json", {})
    assert github_client.delete_file("data/x.json", DATA_BRANCH, "x") is True
    assert github.paths(DATA_BRANCH) == []
    assert github_client.delete_file("data/x.json", DATA_BRANCH, "x") is False


def test_put_binary_returns_download_url(github_client, github):
    url = github_client.put_binary("progress-pictures/a.png", b"\x89PNG", "progress-pictures", "picture")
    assert url == "https://raw.example/progress-pictures/progress-pictures/a.png"
    content, _ = github.files[("progress-pictures", "progress-pictures/a.png")]
    assert content == b"\x89PNG"


def test_server_error_raises_with_message(github_client, github):
    github.fail_status = 500
    with pytest.raises(GitHubError) as exc:
        github_client.list_dir("programs", DATA_BRANCH)
    assert exc.value.status_code == 500
    assert str(exc.value) == "boom"


def test_network_error_raises_github_error(github_client, github):
    github.raise_error = True
    with pytest.raises(GitHubError) as exc:
        github_client.get_file("x.json", DATA_BRANCH)
    assert exc.value.status_code == 502


def test_unconfigured_client_refuses_requests(github):
    client = GitHubClient(RemoteConfig(token="t"), session=github)
    with pytest.raises(GitHubError) as exc:
        client.list_dir("programs", DATA_BRANCH)
    assert exc.value.status_code == 400
    assert github.calls == []


def test_check_connection_reports_video_branch(github_client, github):
    assert github_client.check_connection() == {"ok": True, "video_branch": False}
    github.branches["video-uploads"] = "x"
    assert github_client.check_connection()["video_branch"] is True


def test_content_is_base64_json(github_client, github):
    github_client.put_json("data/y.json", {"a": [1, 2]}, DATA_BRANCH, "y")
    body = [c for c in github.calls if c[0] == "PUT"][0][3]
    assert json.loads(base64.b64decode(body["content"])) == {"a": [1, 2]}
    assert body["branch"] == DATA_BRANCH
