# Shared pytest fixtures
from __future__ import annotations

import logging
import sys
import tempfile
from pathlib import Path
from typing import Any

import pytest

from panel_gate.logging.init import LOGGER_NAME, reset_logging


class FakeCursor:
    """DB-API cursor double: SELECTs pop the next row from the connection."""

    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn
        self._row: Any = None
        self.closed = False

    def execute(self, sql: str, params: tuple | None = None) -> None:
        self.conn.executed.append((sql, params))
        if self.conn.fail_on is not None and self.conn.fail_on in sql:
            raise RuntimeError(f"simulated failure on: {self.conn.fail_on}")
        if sql.startswith("USE "):
            return
        self._row = self.conn.rows.pop(0) if self.conn.rows else None

    def fetchone(self) -> Any:
        return self._row

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(
        self,
        rows: list[Any] | None = None,
        fail_on: str | None = None,
        cursor_error: Exception | None = None,
    ) -> None:
        self.rows = list(rows or [])
        self.fail_on = fail_on
        self.cursor_error = cursor_error
        self.executed: list[tuple[str, tuple | None]] = []
        self.cursors: list[FakeCursor] = []
        self.closed = False

    def cursor(self) -> FakeCursor:
        if self.cursor_error is not None:
            raise self.cursor_error
        c = FakeCursor(self)
        self.cursors.append(c)
        return c

    def close(self) -> None:
        self.closed = True

    @property
    def selects(self) -> list[tuple[str, tuple | None]]:
        return [(sql, p) for sql, p in self.executed if not sql.startswith("USE ")]


@pytest.fixture(autouse=True)
def clean_logging():
    """Each test gets a freshly configured logger bound to its own captured streams."""
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    for h in logger.handlers[:]:
        logger.removeHandler(h)
    yield
    reset_logging()
    for h in logger.handlers[:]:
        logger.removeHandler(h)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PANEL_GATE_CONFIG",
        "PANEL_GATE_SERVER",
        "PANEL_GATE_PORT",
        "PANEL_GATE_USERNAME",
        "PANEL_GATE_PASSWORD",
        "PANEL_GATE_DATABASE",
    ):
        monkeypatch.delenv(name, raising=False)
    # 実行ファイル横の config.ini 探索を作業ディレクトリに固定する
    monkeypatch.setattr(sys, "argv", ["panel-gate"])


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_ini() -> str:
    return """[JVSERVER]
SERVER=sql01.plant.local
USERNAME=station
PASSWORD=s3cr%t
DATABASE=Traceability

[GATE]
LOW_THRESHOLD=3
HIGH_THRESHOLD=6
CONNECT_ATTEMPTS=3
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_ini: str) -> Path:
    cfg = temp_workdir / "config.ini"
    cfg.write_text(sample_config_ini, encoding="utf-8")
    return cfg


@pytest.fixture()
def golden_file(temp_workdir: Path) -> Path:
    f = temp_workdir / "golden_samples"
    f.write_text("GS0001000000A\nVLL1230000042\n", encoding="utf-8")
    return f


@pytest.fixture()
def fake_connection():
    """Factory for FakeConnection doubles."""
    return FakeConnection
