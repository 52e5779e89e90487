"""Tracker configuration."""

import os
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .errors import ConfigError
from .gitlab_client.urls import normalize_host
from .tracking.models import TrackingFilter

DEFAULT_GITLAB_HOST = "https://gitlab.com"


class TrackerConfig(BaseModel):
    """User configuration, persisted as JSON.

    Every field has a default so configurations saved by older versions,
    which lack newer fields, still load.
    """

    gitlab_host: str = Field(DEFAULT_GITLAB_HOST, description="GitLab instance URL")
    access_token: str = Field("", description="Personal access token")
    auto_refresh_interval: int = Field(
        60, ge=0, description="Seconds between refresh cycles (0 disables)"
    )
    my_account: str = Field("", description="Own GitLab handle")
    team_accounts: list[str] = Field(
        default_factory=list, description="Teammate GitLab handles"
    )
    fetch_time_unit: Literal["days", "weeks"] = Field(
        "weeks", description="Unit of the discovery time window"
    )
    fetch_time_value: int = Field(
        2, gt=0, description="Size of the discovery time window"
    )
    fetch_closed_mrs: bool = Field(
        False, description="Whether closed (rejected) MRs are discovered"
    )

    @field_validator("gitlab_host")
    @classmethod
    def _normalize_host(cls, value: str) -> str:
        return normalize_host(value)

    @field_validator("team_accounts")
    @classmethod
    def _drop_blank_accounts(cls, value: list[str]) -> list[str]:
        return [account.strip() for account in value if account.strip()]

    def tracking_filter(self) -> TrackingFilter:
        return TrackingFilter(
            fetch_time_value=self.fetch_time_value,
            fetch_time_unit=self.fetch_time_unit,
            include_closed=self.fetch_closed_mrs,
        )

    def require_token(self) -> str:
        """Return the access token, raising ConfigError when it is missing."""
        if not self.access_token:
            raise ConfigError(
                "Please configure your GitLab access token first. Set GITLAB_TOKEN "
                "or run 'mr-tracker config set --token'."
            )
        return self.access_token

    def has_watched_accounts(self) -> bool:
        return bool(self.my_account.strip()) or bool(self.team_accounts)


def apply_env_overrides(config: TrackerConfig) -> TrackerConfig:
    """Overlay GITLAB_HOST and GITLAB_TOKEN from the environment."""
    updates = {}
    host = os.getenv("GITLAB_HOST")
    token = os.getenv("GITLAB_TOKEN")
    if host:
        updates["gitlab_host"] = host
    if token:
        updates["access_token"] = token

    if not updates:
        return config
    return TrackerConfig.model_validate({**config.model_dump(), **updates})
