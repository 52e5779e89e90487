"""Track the review lifecycle of GitLab merge requests."""

__version__ = "0.1.0"
