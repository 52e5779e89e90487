"""Tests for GitLab client."""

import os
from datetime import date
from unittest.mock import patch

import httpx
import pytest

from gitlab_mr_tracker.errors import ConfigError, RemoteError
from gitlab_mr_tracker.gitlab_client.client import GitLabClient


class TestGitLabClientInit:
    """Test GitLabClient construction."""

    @patch.dict(os.environ, {"GITLAB_TOKEN": "env_token"}, clear=True)
    def test_init_with_env_token(self) -> None:
        """Test initialization reads the token from the environment."""
        client = GitLabClient()
        assert client.token == "env_token"
        assert client.host == "https://gitlab.com"
        assert client.api_url == "https://gitlab.com/api/v4"

    @patch.dict(os.environ, {"GITLAB_TOKEN": "env_token"}, clear=True)
    def test_init_with_explicit_token(self) -> None:
        """Test explicit token wins over the environment."""
        client = GitLabClient(token="explicit_token")
        assert client.token == "explicit_token"

    @patch.dict(os.environ, {"GITLAB_HOST": "GitLab.Internal.io/"}, clear=True)
    def test_init_with_env_host(self) -> None:
        """Test host from the environment is normalized."""
        client = GitLabClient(token="t")
        assert client.host == "https://gitlab.internal.io"

    @pytest.mark.asyncio
    @patch.dict(os.environ, {}, clear=True)
    async def test_request_without_token(self) -> None:
        """Test a missing token is reported when a request is attempted."""
        client = GitLabClient()
        with pytest.raises(ConfigError, match="access token is required"):
            await client.get_merge_request("group/project", 1)


class TestGitLabClientRequests:
    """Test GitLabClient requests against a stubbed API."""

    @pytest.mark.asyncio
    async def test_get_merge_request(self, gitlab_api, gitlab_client, make_mr) -> None:
        """Test detail fetch encodes the project path and sends the token."""
        gitlab_api.add_merge_request(
            make_mr(iid=7, project_path="group/sub/project"),
            project_path="group/sub/project",
        )

        mr = await gitlab_client.get_merge_request("group/sub/project", 7)

        assert mr.iid == 7
        assert mr.state == "opened"
        assert mr.author.username == "alice"
        request = gitlab_api.requests[0]
        assert request.headers["PRIVATE-TOKEN"] == "test-token"
        assert gitlab_api.paths() == [
            "/projects/group%2Fsub%2Fproject/merge_requests/7"
        ]

    @pytest.mark.asyncio
    async def test_get_approvals_and_notes(
        self, gitlab_api, gitlab_client, make_mr, make_user, make_note, make_approvals
    ) -> None:
        """Test approvals and notes payloads are parsed."""
        bob = make_user(2, "bob")
        gitlab_api.add_merge_request(
            make_mr(iid=3),
            approvals=make_approvals([bob]),
            notes=[make_note(1, bob), make_note(2, bob, system=True)],
        )

        approvals = await gitlab_client.get_approvals("group/project", 3)
        notes = await gitlab_client.get_notes("group/project", 3)

        assert [entry.user.username for entry in approvals.approved_by] == ["bob"]
        assert len(notes) == 2
        assert notes[1].system is True

    @pytest.mark.asyncio
    async def test_http_error_raises_remote_error(self, gitlab_client) -> None:
        """Test a non-2xx status surfaces as RemoteError with the status."""
        with pytest.raises(RemoteError) as exc_info:
            await gitlab_client.get_merge_request("group/project", 404)

        assert exc_info.value.status_code == 404
        assert exc_info.value.status_text == "Not Found"
        assert exc_info.value.url.endswith("/merge_requests/404")

    @pytest.mark.asyncio
    async def test_unauthorized_keeps_status(self, gitlab_api, gitlab_client) -> None:
        """Test 401 responses keep their status code."""
        gitlab_api.add(
            "/projects/group%2Fproject/merge_requests/1",
            {"message": "401 Unauthorized"},
            status=401,
        )

        with pytest.raises(RemoteError) as exc_info:
            await gitlab_client.get_merge_request("group/project", 1)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_transport_error_raises_remote_error(
        self, gitlab_api, gitlab_client
    ) -> None:
        """Test connection failures surface as RemoteError without status."""
        gitlab_api.fail(
            "/projects/group%2Fproject/merge_requests/1",
            httpx.ConnectError("connection refused"),
        )

        with pytest.raises(RemoteError) as exc_info:
            await gitlab_client.get_merge_request("group/project", 1)

        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.status_text

    @pytest.mark.asyncio
    async def test_list_merge_requests_by_author(
        self, gitlab_api, gitlab_client, make_mr
    ) -> None:
        """Test list query parameters and @ stripping."""
        gitlab_api.add("/merge_requests", [make_mr(iid=1), make_mr(iid=2)])

        mrs = await gitlab_client.list_merge_requests_by_author(
            "@alice", date(2024, 3, 1)
        )

        assert [mr.iid for mr in mrs] == [1, 2]
        params = gitlab_api.requests[0].url.params
        assert params["author_username"] == "alice"
        assert params["scope"] == "all"
        assert params["created_after"] == "2024-03-01"
        assert params["per_page"] == "100"

    @pytest.mark.asyncio
    async def test_get_project_path(self, gitlab_api, gitlab_client) -> None:
        """Test project id resolution."""
        gitlab_api.add(
            "/projects/100", {"id": 100, "path_with_namespace": "group/project"}
        )

        assert await gitlab_client.get_project_path(100) == "group/project"
