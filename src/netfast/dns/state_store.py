"""
Persistence of the last-known applied filter type.

The record is a single JSON object, ``{"filterType": str, "timestamp": ISO8601}``.
A missing file simply means no filter has ever been detected.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..validation import ErrorSeverity, handle_file_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterStateRecord:
    filter_type: str
    timestamp: datetime


class FilterStateStore:
    """
    Single-writer store for the last detected filter type.

    Writes go to a temporary file in the same directory and are renamed over
    the target, so concurrent readers see either the old or the new record.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[FilterStateRecord]:
        """Return the persisted record, or None if absent or unreadable."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return FilterStateRecord(
                filter_type=str(data["filterType"]),
                timestamp=datetime.fromisoformat(data["timestamp"]),
            )
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            handle_file_error(
                error=e,
                context=f"reading filter state {self.path}",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
            return None

    def save(self, filter_type: str) -> None:
        """Persist ``filter_type``; failures are logged, never raised."""
        record = {
            "filterType": filter_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".filter_state.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(record, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            logger.debug(f"Persisted filter type '{filter_type}' to {self.path}")
        except OSError as e:
            handle_file_error(
                error=e,
                context=f"writing filter state {self.path}",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            handle_file_error(
                error=e,
                context=f"removing filter state {self.path}",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
