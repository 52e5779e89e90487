"""Tests for tracker configuration."""

import os
from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from gitlab_mr_tracker.config import TrackerConfig, apply_env_overrides
from gitlab_mr_tracker.errors import ConfigError


class TestTrackerConfig:
    """Test TrackerConfig validation and helpers."""

    def test_defaults(self) -> None:
        config = TrackerConfig()

        assert config.gitlab_host == "https://gitlab.com"
        assert config.auto_refresh_interval == 60
        assert config.team_accounts == []
        assert config.fetch_time_unit == "weeks"
        assert config.fetch_time_value == 2
        assert config.fetch_closed_mrs is False

    def test_host_normalized(self) -> None:
        assert TrackerConfig(gitlab_host="GitLab.Corp.io/").gitlab_host == (
            "https://gitlab.corp.io"
        )

    def test_blank_team_accounts_dropped(self) -> None:
        config = TrackerConfig(team_accounts=[" bob ", "", "  "])
        assert config.team_accounts == ["bob"]

    @pytest.mark.parametrize(
        "field,value",
        [
            ("fetch_time_value", 0),
            ("fetch_time_unit", "months"),
            ("auto_refresh_interval", -1),
            ("gitlab_host", " "),
        ],
    )
    def test_invalid_values(self, field: str, value: object) -> None:
        with pytest.raises(ValidationError):
            TrackerConfig(**{field: value})

    def test_tracking_filter(self) -> None:
        config = TrackerConfig(
            fetch_time_unit="days", fetch_time_value=3, fetch_closed_mrs=True
        )

        tracking_filter = config.tracking_filter()

        assert tracking_filter.include_closed is True
        now = datetime(2024, 3, 15, 1, 0, tzinfo=timezone.utc)
        assert tracking_filter.created_after(now) == date(2024, 3, 12)

    def test_require_token(self) -> None:
        assert TrackerConfig(access_token="t").require_token() == "t"
        with pytest.raises(ConfigError, match="access token"):
            TrackerConfig().require_token()

    def test_has_watched_accounts(self) -> None:
        assert not TrackerConfig(my_account="  ").has_watched_accounts()
        assert TrackerConfig(my_account="alice").has_watched_accounts()
        assert TrackerConfig(team_accounts=["bob"]).has_watched_accounts()


class TestEnvOverrides:
    """Test environment variable overrides."""

    @patch.dict(os.environ, {}, clear=True)
    def test_no_overrides(self) -> None:
        config = TrackerConfig(access_token="stored")
        assert apply_env_overrides(config) is config

    @patch.dict(
        os.environ,
        {"GITLAB_TOKEN": "env-token", "GITLAB_HOST": "gitlab.env.io"},
        clear=True,
    )
    def test_overrides(self) -> None:
        config = TrackerConfig(access_token="stored", my_account="alice")

        effective = apply_env_overrides(config)

        assert effective.access_token == "env-token"
        assert effective.gitlab_host == "https://gitlab.env.io"
        assert effective.my_account == "alice"
        assert config.access_token == "stored"
