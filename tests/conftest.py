"""Test configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

from gitlab_mr_tracker.gitlab_client.client import GitLabClient
from gitlab_mr_tracker.storage.manager import StorageManager
from gitlab_mr_tracker.tracking.aggregator import MergeRequestAggregator
from gitlab_mr_tracker.tracking.models import MRStatus, Person, TrackedMergeRequest

HOST = "https://gitlab.example.com"
FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


class StubGitLabAPI:
    """Canned GitLab API responses served through httpx.MockTransport.

    Routes are keyed by the raw request path below /api/v4, so project paths
    appear URL-encoded (``/projects/group%2Fproject/merge_requests/1``).
    Unknown paths answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, payload: Any, status: int = 200) -> None:
        self.routes[path] = (status, payload)

    def fail(self, path: str, error: Exception) -> None:
        self.routes[path] = (0, error)

    def add_merge_request(
        self,
        mr: dict[str, Any],
        project_path: str = "group/project",
        approvals: Any = None,
        notes: Any = None,
    ) -> str:
        """Register detail, approvals and notes for one MR; returns its base path."""
        encoded = project_path.replace("/", "%2F")
        base = f"/projects/{encoded}/merge_requests/{mr['iid']}"
        self.add(base, mr)
        if approvals is not None:
            self.add(f"{base}/approvals", approvals)
        if notes is not None:
            self.add(f"{base}/notes", notes)
        return base

    def paths(self) -> list[str]:
        return [self._route_key(request) for request in self.requests]

    @staticmethod
    def _route_key(request: httpx.Request) -> str:
        raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        return raw_path.removeprefix("/api/v4")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = self._route_key(request)
        if key not in self.routes:
            return httpx.Response(404, json={"message": "404 Not Found"})

        status, payload = self.routes[key]
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(status, json=payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def _user(user_id: int, username: str) -> dict[str, Any]:
    return {
        "id": user_id,
        "username": username,
        "name": username.replace("-", " ").title(),
        "avatar_url": f"https://avatars.example.com/{username}.png",
    }


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create temporary data directory structure."""
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True)
    return data_dir


@pytest.fixture
def storage(temp_data_dir: Path) -> StorageManager:
    return StorageManager(base_path=temp_data_dir)


@pytest.fixture
def gitlab_api() -> StubGitLabAPI:
    return StubGitLabAPI()


@pytest.fixture
def gitlab_client(gitlab_api: StubGitLabAPI) -> GitLabClient:
    return GitLabClient(host=HOST, token="test-token", transport=gitlab_api.transport)


@pytest.fixture
def aggregator(gitlab_client: GitLabClient) -> MergeRequestAggregator:
    return MergeRequestAggregator(gitlab_client, clock=lambda: FIXED_NOW)


@pytest.fixture
def make_user() -> Callable[..., dict[str, Any]]:
    return _user


@pytest.fixture
def make_mr() -> Callable[..., dict[str, Any]]:
    """Factory for GitLab merge request payloads."""

    def factory(
        iid: int = 1,
        project_path: str = "group/project",
        state: str = "opened",
        author: dict[str, Any] | None = None,
        project_id: int = 100,
        **overrides: Any,
    ) -> dict[str, Any]:
        payload = {
            "id": 10_000 + iid,
            "iid": iid,
            "project_id": project_id,
            "title": f"Merge request {iid}",
            "state": state,
            "web_url": f"{HOST}/{project_path}/-/merge_requests/{iid}",
            "created_at": "2024-03-01T10:00:00Z",
            "updated_at": "2024-03-02T10:00:00Z",
            "merged_at": None,
            "closed_at": None,
            "author": author or _user(1, "alice"),
        }
        payload.update(overrides)
        return payload

    return factory


@pytest.fixture
def make_note() -> Callable[..., dict[str, Any]]:
    """Factory for GitLab note payloads."""

    def factory(
        note_id: int,
        author: dict[str, Any],
        created_at: str = "2024-03-03T10:00:00Z",
        system: bool = False,
    ) -> dict[str, Any]:
        return {
            "id": note_id,
            "body": "changed the description" if system else "Looks good",
            "author": author,
            "created_at": created_at,
            "system": system,
        }

    return factory


@pytest.fixture
def make_approvals() -> Callable[..., dict[str, Any]]:
    """Factory for GitLab approval payloads."""

    def factory(
        users: list[dict[str, Any]] | None = None,
        updated_at: str | None = "2024-03-04T10:00:00Z",
    ) -> dict[str, Any]:
        return {
            "approved_by": [{"user": user} for user in users or []],
            "approvals_required": 1,
            "approvals_left": 0 if users else 1,
            "updated_at": updated_at,
        }

    return factory


@pytest.fixture
def make_tracked() -> Callable[..., TrackedMergeRequest]:
    """Factory for already aggregated merge requests."""

    def factory(
        iid: int = 1,
        author: str = "alice",
        project_path: str = "group/project",
        status: MRStatus = MRStatus.NEW,
        created_day: int = 1,
        **overrides: Any,
    ) -> TrackedMergeRequest:
        created_at = datetime(2024, 3, created_day, 10, 0, 0, tzinfo=timezone.utc)
        fields: dict[str, Any] = {
            "id": f"{HOST}/{project_path}/-/merge_requests/{iid}",
            "url": f"{HOST}/{project_path}/-/merge_requests/{iid}",
            "project_id": 100,
            "iid": iid,
            "title": f"Merge request {iid}",
            "repository": project_path,
            "status": status,
            "status_updated_at": created_at,
            "author": Person(id=sum(map(ord, author)), username=author),
            "created_at": created_at,
            "last_fetched_at": FIXED_NOW,
        }
        fields.update(overrides)
        return TrackedMergeRequest(**fields)

    return factory
