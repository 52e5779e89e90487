"""Exception types raised by the tracker."""


class TrackerError(Exception):
    """Base class for tracker errors."""


class RemoteError(TrackerError):
    """A GitLab API call did not complete with a success status.

    ``status_code`` is ``None`` when the request never produced a response
    (connection refused, timeout, DNS failure).
    """

    def __init__(
        self,
        status_code: int | None,
        status_text: str,
        url: str | None = None,
    ):
        self.status_code = status_code
        self.status_text = status_text
        self.url = url
        if status_code is None:
            message = f"GitLab API request failed: {status_text}"
        else:
            message = f"GitLab API error: {status_code} {status_text}"
        super().__init__(message)


class ParseError(TrackerError, ValueError):
    """A merge request URL or identity key could not be parsed."""


class ConfigError(TrackerError, ValueError):
    """Configuration required for a remote call is missing."""
