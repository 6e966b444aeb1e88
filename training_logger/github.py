"""Thin client for the GitHub contents API used as the app's data store.

Every record lives as a JSON file on a dedicated branch of the user's
repository. Binary uploads (progress pictures, workout videos) go to their
own branches so the data branches stay small.
"""

import base64
import json
import logging
import time
from typing import Any

import requests

from training_logger.config import RemoteConfig, github_api_url, github_timeout

logger = logging.getLogger(__name__)

PROGRAMS_BRANCH = "training-programs"
DATA_BRANCH = "training-data"
PICTURES_BRANCH = "progress-pictures"
VIDEOS_BRANCH = "video-uploads"
BASE_BRANCH = "main"


class GitHubError(Exception):
    def __init__(self, message: str, status_code: int = 502):
        self.status_code = status_code
        super().__init__(message)


class GitHubClient:
    def __init__(self, config: RemoteConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    @property
    def repo_url(self) -> str:
        return f"{github_api_url()}/repos/{self.config.username}/{self.config.repo}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self.config.token}",
            "Accept": "application/vnd.github.v3+json",
        }

    def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> requests.Response:
        if not self.config.is_configured:
            raise GitHubError("GitHub configuration required", status_code=400)
        try:
            return self.session.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=payload,
                timeout=github_timeout(),
            )
        except requests.RequestException as err:
            raise GitHubError(f"GitHub request failed: {err}") from err

    @staticmethod
    def _error_message(resp: requests.Response, fallback: str) -> str:
        try:
            body = resp.json()
        except ValueError:
            return fallback
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return fallback

    def _contents_url(self, path: str) -> str:
        return f"{self.repo_url}/contents/{path.strip('/')}"

    def branch_exists(self, branch: str) -> bool:
        resp = self._request("GET", f"{self.repo_url}/branches/{branch}")
        return resp.status_code == 200

    def ensure_branch(self, branch: str) -> bool:
        if self.branch_exists(branch):
            return True
        base = self._request("GET", f"{self.repo_url}/git/refs/heads/{BASE_BRANCH}")
        if base.status_code != 200:
            logger.error("Could not read %s branch info (%s)", BASE_BRANCH, base.status_code)
            return False
        base_sha = (base.json().get("object") or {}).get("sha")
        if not base_sha:
            logger.error("Branch %s has no commit sha", BASE_BRANCH)
            return False
        created = self._request(
            "POST",
            f"{self.repo_url}/git/refs",
            payload={"ref": f"refs/heads/{branch}", "sha": base_sha},
        )
        if created.status_code not in (200, 201):
            logger.error("Could not create branch %s (%s)", branch, created.status_code)
            return False
        logger.info("Created branch %s from %s", branch, BASE_BRANCH)
        return True

    def list_dir(self, path: str, branch: str) -> list[dict[str, Any]]:
        resp = self._request(
            "GET",
            self._contents_url(path),
            params={"ref": branch, "_cb": int(time.time() * 1000)},
        )
        if resp.status_code == 404:
            return []
        if resp.status_code != 200:
            raise GitHubError(
                self._error_message(resp, f"Failed to list {path}: {resp.status_code}"),
                status_code=resp.status_code,
            )
        entries = resp.json()
        if not isinstance(entries, list):
            return []
        return [e for e in entries if isinstance(e, dict)]

    def get_file(self, path: str, branch: str) -> dict[str, Any] | None:
        resp = self._request(
            "GET",
            self._contents_url(path),
            params={"ref": branch, "_cb": int(time.time() * 1000)},
        )
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise GitHubError(
                self._error_message(resp, f"Failed to read {path}: {resp.status_code}"),
                status_code=resp.status_code,
            )
        return resp.json()

    def get_json(self, path: str, branch: str) -> tuple[Any, str] | None:
        file_data = self.get_file(path, branch)
        if not file_data:
            return None
        try:
            raw = base64.b64decode(file_data.get("content", ""))
            return json.loads(raw.decode("utf-8")), str(file_data.get("sha", ""))
        except (ValueError, UnicodeDecodeError) as err:
            raise GitHubError(f"{path} is not valid JSON: {err}", status_code=502) from err

    def _file_sha(self, path: str, branch: str) -> str | None:
        try:
            existing = self.get_file(path, branch)
        except GitHubError:
            return None
        if existing:
            return existing.get("sha")
        return None

    def _put(self, path: str, content: bytes, branch: str, label: str) -> dict[str, Any]:
        sha = self._file_sha(path, branch)
        body: dict[str, Any] = {
            "message": f"{'Update' if sha else 'Add'} {label}",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }
        if sha:
            body["sha"] = sha
        resp = self._request("PUT", self._contents_url(path), payload=body)
        if resp.status_code not in (200, 201):
            raise GitHubError(
                self._error_message(resp, f"Failed to save {path} to GitHub"),
                status_code=resp.status_code,
            )
        return resp.json()

    def put_json(self, path: str, payload: Any, branch: str, label: str) -> None:
        if not self.ensure_branch(branch):
            raise GitHubError(f"Could not access {branch} branch")
        self._put(path, json.dumps(payload, indent=2).encode("utf-8"), branch, label)

    def put_binary(self, path: str, content: bytes, branch: str, label: str) -> str:
        if not self.ensure_branch(branch):
            raise GitHubError(f"Could not access {branch} branch")
        result = self._put(path, content, branch, label)
        return str((result.get("content") or {}).get("download_url") or "")

    def delete_file(self, path: str, branch: str, label: str) -> bool:
        existing = self.get_file(path, branch)
        if not existing:
            return False
        resp = self._request(
            "DELETE",
            self._contents_url(path),
            payload={"message": f"Delete {label}", "sha": existing.get("sha"), "branch": branch},
        )
        if resp.status_code != 200:
            raise GitHubError(
                self._error_message(resp, f"Failed to delete {path}"),
                status_code=resp.status_code,
            )
        return True

    def check_connection(self) -> dict[str, Any]:
        resp = self._request("GET", f"{github_api_url()}/user/repos")
        if resp.status_code != 200:
            raise GitHubError("GitHub connection failed. Check your credentials.", status_code=resp.status_code)
        return {"ok": True, "video_branch": self.branch_exists(VIDEOS_BRANCH)}
