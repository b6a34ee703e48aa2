from __future__ import annotations

from pathlib import Path

import pytest

from panel_gate.config.loader import ConfigError, load_config
from panel_gate.models.config_models import ArgMode, AuthMode


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.store.server == "sql01.plant.local"
    assert cfg.store.username == "station"
    assert cfg.store.password == "s3cr%t"  # interpolation 無効
    assert cfg.store.database == "Traceability"
    assert cfg.store.port is None
    assert cfg.store.auth is AuthMode.SQL
    assert cfg.policy.low_threshold == 3
    assert cfg.policy.high_threshold == 6
    assert cfg.policy.connect_attempts == 3
    assert cfg.arg_mode is ArgMode.PANEL
    assert cfg.error_log_dir is None


def test_load_config_defaults_without_gate_section(temp_workdir: Path):
    p = temp_workdir / "config.ini"
    p.write_text("[JVSERVER]\nSERVER=s\nUSERNAME=u\nPASSWORD=p\n", encoding="utf-8")
    cfg = load_config(p)
    assert cfg.store.database is None
    assert cfg.policy.low_threshold == 3
    assert cfg.policy.high_threshold == 6
    assert cfg.store.connect_timeout == 10
    assert cfg.store.query_timeout == 30
    assert cfg.schema.table == "dbo.SMT_Test"
    assert cfg.schema.failed_value == "Failed"
    assert cfg.golden_samples_path == temp_workdir.resolve() / "golden_samples"


def test_load_config_optional_fields(temp_workdir: Path):
    p = temp_workdir / "config.ini"
    p.write_text(
        "[JVSERVER]\nserver=s\nusername=u\npassword=p\nport=1433\nauth=win\ndatabase=\n"
        "[GATE]\nLOW_THRESHOLD=2\nHIGH_THRESHOLD=2\nARG_MODE=Verbose\n"
        "GOLDEN_SAMPLES=lists/gs.txt\nERROR_LOG_DIR=faults\nTABLE=hist.Results\n",
        encoding="utf-8",
    )
    cfg = load_config(p)
    assert cfg.store.port == 1433
    assert cfg.store.auth is AuthMode.WINDOWS
    assert cfg.store.database is None
    assert cfg.policy.low_threshold == cfg.policy.high_threshold == 2
    assert cfg.arg_mode is ArgMode.VERBOSE
    assert cfg.golden_samples_path == temp_workdir.resolve() / "lists" / "gs.txt"
    assert cfg.error_log_dir == temp_workdir.resolve() / "faults"
    assert cfg.schema.table == "hist.Results"


def test_load_config_bom(temp_workdir: Path):
    p = temp_workdir / "config.ini"
    p.write_bytes("[JVSERVER]\nSERVER=s\nUSERNAME=u\nPASSWORD=p\n".encode("utf-8-sig"))
    assert load_config(p).store.server == "s"


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError) as e:
        load_config(temp_workdir / "not_exists.ini")
    assert "Could not read configuration file!" in str(e.value)


def test_load_config_missing_section(temp_workdir: Path):
    p = temp_workdir / "config.ini"
    p.write_text("[OTHER]\nSERVER=s\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(p)
    assert "config validation failed" in str(e.value) and "JVSERVER" in str(e.value)


@pytest.mark.parametrize("field", ["SERVER", "USERNAME", "PASSWORD"])
def test_load_config_missing_mandatory(write_config: Path, field: str):
    lines = [ln for ln in write_config.read_text(encoding="utf-8").splitlines() if not ln.startswith(f"{field}=")]
    write_config.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "required property" in str(e.value)
    assert field in str(e.value)


def test_load_config_empty_mandatory(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("SERVER=sql01.plant.local", "SERVER=")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_load_config_unknown_key(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "LOW_THRESHOLT=4\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


@pytest.mark.parametrize(
    "line",
    ["LOW_THRESHOLD=three", "CONNECT_ATTEMPTS=0", "CONNECT_ATTEMPTS=11", "ARG_MODE=loud", "QUERY_TIMEOUT=0"],
)
def test_load_config_invalid_gate_values(temp_workdir: Path, line: str):
    p = temp_workdir / "config.ini"
    p.write_text(f"[JVSERVER]\nSERVER=s\nUSERNAME=u\nPASSWORD=p\n[GATE]\n{line}\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(p)


def test_load_config_high_below_low(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("HIGH_THRESHOLD=6", "HIGH_THRESHOLD=2")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="HIGH_THRESHOLD"):
        load_config(write_config)


def test_load_config_invalid_port(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("DATABASE=Traceability", "PORT=14x3")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_load_config_broken_ini(temp_workdir: Path):
    p = temp_workdir / "config.ini"
    p.write_text("SERVER=no section header\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid ini"):
        load_config(p)
