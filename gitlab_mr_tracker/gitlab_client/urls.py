"""Merge request URL parsing and identity key construction."""

import re
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from ..errors import ParseError

# Path pattern: /{group}/{subgroup...}/{project}/-/merge_requests/{iid}
MR_PATH_PATTERN = re.compile(r"^/(.+?)/-/merge_requests/(\d+)/?$")
PROJECT_PATH_FROM_WEB_URL = re.compile(r"^https?://[^/]+/(.+?)/-/merge_requests/")


class ParsedMRUrl(BaseModel):
    """Components that uniquely identify a merge request."""

    host: str = Field(..., description="Normalized origin, e.g. https://gitlab.com")
    project_path: str = Field(..., description="Full project path with namespace")
    iid: int = Field(..., description="MR number within the project")

    @property
    def identity(self) -> str:
        """Stable identity key for this merge request."""
        return build_identity(self.host, self.project_path, self.iid)


def normalize_host(host: str) -> str:
    """Reduce a host setting or URL to a lowercase ``scheme://netloc`` origin.

    A bare hostname is assumed to be served over https.
    """
    candidate = host.strip()
    if not candidate:
        raise ParseError("GitLab host is empty")
    if "://" not in candidate:
        candidate = f"https://{candidate}"

    parsed = urlparse(candidate)
    if not parsed.netloc:
        raise ParseError(f"Invalid GitLab host '{host}'")
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def build_identity(host: str, project_path: str, iid: int) -> str:
    """Build the identity key from host, project path and iid."""
    return f"{normalize_host(host)}/{project_path.strip('/')}/-/merge_requests/{iid}"


def parse_mr_url(url: str) -> ParsedMRUrl:
    """Parse a merge request web URL.

    Args:
        url: URL such as https://gitlab.com/group/project/-/merge_requests/42

    Returns:
        ParsedMRUrl with normalized host

    Raises:
        ParseError: If the URL is not a GitLab merge request URL
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError as e:
        raise ParseError(f"Invalid merge request URL '{url}': {e}") from e

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ParseError(f"Invalid merge request URL '{url}'")

    match = MR_PATH_PATTERN.match(parsed.path)
    if not match:
        raise ParseError(
            f"Invalid merge request URL '{url}'. Expected format: "
            f"https://HOST/GROUP/PROJECT/-/merge_requests/NUMBER"
        )

    return ParsedMRUrl(
        host=normalize_host(f"{parsed.scheme}://{parsed.netloc}"),
        project_path=match.group(1),
        iid=int(match.group(2)),
    )


def parse_identity(identity: str) -> ParsedMRUrl:
    """Parse an identity key back into its components.

    Identity keys are URL shaped, so keys stored without a scheme are read
    as https.
    """
    if "://" not in identity:
        identity = f"https://{identity}"
    return parse_mr_url(identity)


def is_valid_mr_url(url: str) -> bool:
    """Check whether a string is a parseable merge request URL."""
    try:
        parse_mr_url(url)
    except ParseError:
        return False
    return True


def project_path_from_web_url(web_url: str) -> str | None:
    """Extract the project path from an MR web URL, or None."""
    match = PROJECT_PATH_FROM_WEB_URL.match(web_url)
    return match.group(1) if match else None
