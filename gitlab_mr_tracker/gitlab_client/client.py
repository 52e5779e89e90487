"""GitLab API client using httpx."""

import logging
import os
from datetime import date
from typing import Any
from urllib.parse import quote

import httpx

from .. import __version__
from ..errors import ConfigError, RemoteError
from ..utils.date_parser import format_date_for_gitlab
from .models import GitLabApprovals, GitLabMergeRequest, GitLabNote, GitLabProject
from .urls import normalize_host

logger = logging.getLogger(__name__)

DEFAULT_HOST = "https://gitlab.com"
LIST_PAGE_SIZE = 100


class GitLabClient:
    """Async GitLab REST v4 client authenticated with a personal access token."""

    def __init__(
        self,
        host: str | None = None,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize GitLab client.

        Args:
            host: GitLab instance origin. If None, reads from GITLAB_HOST env
                var and falls back to https://gitlab.com.
            token: GitLab personal access token. If None, reads from
                GITLAB_TOKEN env var. A missing token is reported when the
                first request is attempted.
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used to stub the API in tests)
        """
        self.host = normalize_host(host or os.getenv("GITLAB_HOST") or DEFAULT_HOST)
        self.token = token or os.getenv("GITLAB_TOKEN")
        self.api_url = f"{self.host}/api/v4"
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self.token:
            raise ConfigError(
                "GitLab access token is required. Set GITLAB_TOKEN environment "
                "variable or run 'mr-tracker config set --token'."
            )
        return {
            "PRIVATE-TOKEN": self.token,
            "User-Agent": f"gitlab-mr-tracker/{__version__}",
            "Accept": "application/json",
        }

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Issue an authenticated GET and return the decoded JSON body.

        Raises:
            ConfigError: If no access token is configured
            RemoteError: On transport failure, non-2xx status or a body that
                is not JSON
        """
        headers = self._headers()
        url = f"{self.api_url}{path}"

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.timeout
            ) as client:
                response = await client.get(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise RemoteError(None, str(e) or type(e).__name__, url) from e

        if not response.is_success:
            raise RemoteError(response.status_code, response.reason_phrase, url)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(
                response.status_code, "Response body is not valid JSON", url
            ) from e

    def _merge_request_path(self, project_path: str, iid: int) -> str:
        encoded = quote(project_path, safe="")
        return f"/projects/{encoded}/merge_requests/{iid}"

    async def get_merge_request(
        self, project_path: str, iid: int
    ) -> GitLabMergeRequest:
        """Get a single merge request."""
        data = await self._get(self._merge_request_path(project_path, iid))
        return GitLabMergeRequest.model_validate(data)

    async def get_approvals(self, project_path: str, iid: int) -> GitLabApprovals:
        """Get the approval state of a merge request."""
        path = f"{self._merge_request_path(project_path, iid)}/approvals"
        data = await self._get(path)
        return GitLabApprovals.model_validate(data)

    async def get_notes(self, project_path: str, iid: int) -> list[GitLabNote]:
        """Get notes (comments and system events) of a merge request."""
        path = f"{self._merge_request_path(project_path, iid)}/notes"
        data = await self._get(path)
        return [GitLabNote.model_validate(note) for note in data]

    async def get_project_path(self, project_id: int) -> str:
        """Resolve a numeric project id to its path with namespace."""
        data = await self._get(f"/projects/{project_id}")
        return GitLabProject.model_validate(data).path_with_namespace

    async def list_merge_requests_by_author(
        self, username: str, created_after: date
    ) -> list[GitLabMergeRequest]:
        """List merge requests authored by a user, across all projects.

        Only the first page (up to 100 entries) is returned. All states are
        requested; state filtering happens on the caller's side.

        Args:
            username: GitLab handle, with or without a leading @
            created_after: Inclusive lower bound on creation date

        Returns:
            List of GitLabMergeRequest summaries
        """
        clean_username = username.strip().removeprefix("@")
        params = {
            "author_username": clean_username,
            "scope": "all",
            "created_after": format_date_for_gitlab(created_after),
            "per_page": LIST_PAGE_SIZE,
        }
        logger.debug("Listing merge requests with params: %s", params)

        data = await self._get("/merge_requests", params=params)
        return [GitLabMergeRequest.model_validate(item) for item in data]
