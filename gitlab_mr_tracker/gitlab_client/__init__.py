"""GitLab client package for API interaction."""

from .client import GitLabClient
from .models import (
    GitLabApprovals,
    GitLabApprover,
    GitLabMergeRequest,
    GitLabNote,
    GitLabProject,
    GitLabUser,
)
from .urls import ParsedMRUrl, build_identity, parse_identity, parse_mr_url

__all__ = [
    "GitLabClient",
    "GitLabUser",
    "GitLabMergeRequest",
    "GitLabApprover",
    "GitLabApprovals",
    "GitLabNote",
    "GitLabProject",
    "ParsedMRUrl",
    "build_identity",
    "parse_identity",
    "parse_mr_url",
]
