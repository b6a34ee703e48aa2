from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""FaultRecord model for the fault journal.

One record per ``ER`` outcome. The JSON line carries exactly the dataclass
fields; consumers on the station side rely on the fixed key set.
"""

__all__ = [
    "FaultRecord",
]


@dataclass(frozen=True)
class FaultRecord:
    """Structured fault record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        serial: Scanned unit identifier ("" when the argument was missing)
        panel_size: Boards on panel as requested by the caller
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable message, same text as the ER line
    """
    timestamp: str  # ISO8601 UTC
    serial: str
    panel_size: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(serial: str, panel_size: int, error_type: str, message: str) -> FaultRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return FaultRecord(
            timestamp=ts,
            serial=serial,
            panel_size=panel_size,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
