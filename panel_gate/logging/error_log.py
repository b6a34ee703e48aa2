from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from panel_gate.models.error_record import FaultRecord

"""Fault journal.

Every ER outcome can be appended to ``<dir>/faults-YYYYMMDD.log`` (UTC date) as
one JSON line, so line engineers can see why a station kept refusing boards
without access to the station console. Disabled unless ERROR_LOG_DIR is set.
"""

__all__ = [
    "FaultRecord",
    "FaultJournal",
]

DATE_FMT = "%Y%m%d"


class FaultJournal:
    """Append-only JSON Lines writer, one file per UTC day.

    The gate is a one-shot process, so records are written immediately
    instead of buffered.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    @property
    def file_path(self) -> Path:
        stamp = datetime.now(UTC).strftime(DATE_FMT)
        return self.directory / f"faults-{stamp}.log"

    def append(self, record: FaultRecord) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            f.write(record.to_json_line() + "\n")
        return fp
