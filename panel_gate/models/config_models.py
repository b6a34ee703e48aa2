from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

"""Config dataclasses for the panel retest gate.

The loader in panel_gate/config/loader.py builds these from the station's INI
file; everything downstream (engine, store client, CLI) only sees these typed,
immutable objects.
"""


class AuthMode(Enum):
    """Authentication selector for the result store.

    - SQL: username/password credentials
    - WINDOWS: integrated (trusted) authentication, selected by ``AUTH=WIN``
    """
    SQL = "sql"
    WINDOWS = "windows"

    @classmethod
    def from_config(cls, raw: str | None) -> AuthMode:
        if raw is not None and raw.strip().upper() == "WIN":
            return cls.WINDOWS
        return cls.SQL


class ArgMode(Enum):
    """How the optional second positional argument is interpreted."""
    PANEL = "panel"
    VERBOSE = "verbose"


@dataclass(frozen=True)
class StoreConnectionParams:
    """Connection parameters for the historical test-result store.

    Cloned per connection attempt; a failed attempt never leaks state into the next.
    """
    server: str
    username: str
    password: str
    database: str | None = None  # None/空 -> サーバ既定 DB (USE しない)
    port: int | None = None
    auth: AuthMode = AuthMode.SQL
    connect_timeout: int = 10  # login timeout (sec) per attempt
    query_timeout: int = 30

    def with_overrides(self, **changes: object) -> StoreConnectionParams:
        return replace(self, **changes)  # type: ignore[arg-type]


@dataclass(frozen=True)
class StoreSchema:
    """Names of the table and columns holding historical test records."""
    table: str = "dbo.SMT_Test"
    serial_column: str = "Serial_NMBR"
    result_column: str = "Result"
    failed_value: str = "Failed"


@dataclass(frozen=True)
class GatePolicy:
    """Threshold policy for the decision engine.

    ``tested < low_threshold`` admits unconditionally, ``tested >= high_threshold``
    rejects unconditionally, anything in between is decided by panel failures.
    """
    low_threshold: int = 3
    high_threshold: int = 6
    connect_attempts: int = 3


@dataclass(frozen=True)
class GateConfig:
    """Root configuration object for one gate invocation."""
    store: StoreConnectionParams
    policy: GatePolicy
    schema: StoreSchema
    golden_samples_path: Path
    arg_mode: ArgMode = ArgMode.PANEL
    error_log_dir: Path | None = None
