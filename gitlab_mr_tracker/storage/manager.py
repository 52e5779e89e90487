"""Key/value JSON storage for tracker state."""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..config import TrackerConfig
from ..tracking.models import MRStatus, TrackedMergeRequest

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "data/mr_tracker"

CONFIG_KEY = "gitlab_mr_config"
MR_LIST_KEY = "gitlab_mr_list"
LAST_UPDATED_KEY = "gitlab_mr_last_updated"
HIDDEN_MRS_KEY = "gitlab_mr_hidden"
STATUS_FILTERS_KEY = "gitlab_mr_status_filters"
READ_TIMESTAMPS_KEY = "gitlab_mr_read_timestamps"


class StorageManager:
    """Stores each key as a JSON file under a base directory.

    Reads that fail for any reason return None; writes that fail are logged
    and reported through the return value, never raised.
    """

    def __init__(self, base_path: str | Path | None = None):
        """Initialize storage manager.

        Args:
            base_path: Directory holding the JSON files. If None, reads from
                MR_TRACKER_DATA_DIR env var and falls back to data/mr_tracker.
        """
        self.base_path = Path(
            base_path or os.getenv("MR_TRACKER_DATA_DIR") or DEFAULT_DATA_DIR
        )
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_file_path(self, key: str) -> Path:
        return self.base_path / f"{key}.json"

    def get(self, key: str) -> Any | None:
        """Load the value stored under ``key``, or None if absent or unreadable."""
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None

        try:
            with open(file_path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s: %s", file_path, e)
            return None

    def set(self, key: str, value: Any) -> bool:
        """Store ``value`` under ``key``.

        The file is written next to its destination and moved into place, so
        a failed write leaves the previous value intact.

        Returns:
            True if the value was written
        """
        file_path = self._get_file_path(key)
        temp_path = file_path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(
                    value,
                    f,
                    indent=2,
                    ensure_ascii=False,
                    default=str,  # Handle datetime objects
                )
            temp_path.replace(file_path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save %s: %s", key, e)
            return False

    def delete(self, key: str) -> None:
        """Remove the value stored under ``key`` if present."""
        self._get_file_path(key).unlink(missing_ok=True)

    def get_config(self) -> TrackerConfig | None:
        """Load the stored configuration.

        Configurations written by older versions lack some fields; those are
        filled from the model defaults.
        """
        data = self.get(CONFIG_KEY)
        if not isinstance(data, dict):
            return None

        try:
            return TrackerConfig.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring invalid stored configuration: %s", e)
            return None

    def save_config(self, config: TrackerConfig) -> bool:
        return self.set(CONFIG_KEY, config.model_dump(mode="json"))

    def get_merge_requests(self) -> list[TrackedMergeRequest]:
        """Load the tracked merge request collection.

        Entries that no longer validate are skipped.
        """
        data = self.get(MR_LIST_KEY)
        if not isinstance(data, list):
            return []

        merge_requests = []
        for entry in data:
            try:
                merge_requests.append(TrackedMergeRequest.model_validate(entry))
            except ValidationError as e:
                logger.warning("Skipping invalid stored merge request: %s", e)
                continue

        return merge_requests

    def save_merge_requests(self, merge_requests: list[TrackedMergeRequest]) -> bool:
        return self.set(
            MR_LIST_KEY, [mr.model_dump(mode="json") for mr in merge_requests]
        )

    def get_last_updated(self) -> datetime | None:
        value = self.get(LAST_UPDATED_KEY)
        if not isinstance(value, str):
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            logger.warning("Ignoring invalid last updated timestamp: %s", value)
            return None

    def save_last_updated(self, timestamp: datetime) -> bool:
        return self.set(LAST_UPDATED_KEY, timestamp.isoformat())

    def get_hidden_ids(self) -> list[str]:
        value = self.get(HIDDEN_MRS_KEY)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    def save_hidden_ids(self, hidden_ids: list[str]) -> bool:
        return self.set(HIDDEN_MRS_KEY, list(hidden_ids))

    def get_status_filters(self) -> dict[MRStatus, bool]:
        """Per-status visibility; every status is visible unless stored otherwise."""
        filters = {status: True for status in MRStatus}

        value = self.get(STATUS_FILTERS_KEY)
        if isinstance(value, dict):
            for raw_status, visible in value.items():
                try:
                    filters[MRStatus(raw_status)] = bool(visible)
                except ValueError:
                    logger.warning("Ignoring unknown status filter: %s", raw_status)

        return filters

    def save_status_filters(self, filters: dict[MRStatus, bool]) -> bool:
        return self.set(
            STATUS_FILTERS_KEY,
            {status.value: visible for status, visible in filters.items()},
        )

    def get_read_timestamps(self) -> dict[str, datetime]:
        """Per merge request id, the last time the user marked it as read."""
        value = self.get(READ_TIMESTAMPS_KEY)
        if not isinstance(value, dict):
            return {}

        timestamps = {}
        for mr_id, raw in value.items():
            try:
                timestamps[mr_id] = datetime.fromisoformat(raw)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid read timestamp for %s", mr_id)
        return timestamps

    def save_read_timestamps(self, timestamps: dict[str, datetime]) -> bool:
        return self.set(
            READ_TIMESTAMPS_KEY,
            {mr_id: ts.isoformat() for mr_id, ts in timestamps.items()},
        )

    def update_read_timestamp(self, mr_id: str, timestamp: datetime) -> bool:
        timestamps = self.get_read_timestamps()
        timestamps[mr_id] = timestamp
        return self.save_read_timestamps(timestamps)

    def delete_read_timestamp(self, mr_id: str) -> bool:
        timestamps = self.get_read_timestamps()
        if timestamps.pop(mr_id, None) is None:
            return False
        return self.save_read_timestamps(timestamps)

    def get_storage_stats(self) -> dict[str, Any]:
        """Get statistics about stored state.

        Returns:
            Dictionary with storage statistics
        """
        all_files = list(self.base_path.glob("*.json"))
        total_size = sum(f.stat().st_size for f in all_files)
        last_updated = self.get_last_updated()

        return {
            "total_merge_requests": len(self.get_merge_requests()),
            "hidden_merge_requests": len(self.get_hidden_ids()),
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "last_updated": last_updated.isoformat() if last_updated else None,
            "storage_path": str(self.base_path.absolute()),
        }
