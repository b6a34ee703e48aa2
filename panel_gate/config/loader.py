from __future__ import annotations

import configparser
import json
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    ArgMode,
    AuthMode,
    GateConfig,
    GatePolicy,
    StoreConnectionParams,
    StoreSchema,
)

"""Config loader for the station INI file.

Responsibilities:
- Load the INI file ([JVSERVER] mandatory, [GATE] optional)
- Validate sections against config_schema.json (jsonschema)
- Apply defaults for every [GATE] key
- Build the typed GateConfig

Errors never terminate the process here; they surface as ConfigError and the
CLI reports them on the regular ER line.
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

STORE_SECTION = "JVSERVER"
GATE_SECTION = "GATE"

DEFAULT_GOLDEN_SAMPLES = "golden_samples"


class ConfigError(Exception):
    pass


def _read_ini(path: Path) -> dict[str, dict[str, str]]:
    parser = configparser.ConfigParser(interpolation=None)  # パスワード中の % を許容
    parser.optionxform = str.upper  # type: ignore[assignment,method-assign]
    try:
        # Windows のメモ帳で保存された BOM 付きファイルにも対応
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not read configuration file! [{path}]") from e
    try:
        parser.read_string(text, source=str(path))
    except configparser.Error as e:
        raise ConfigError(f"invalid ini: {e}") from e
    return {name: dict(parser.items(name)) for name in parser.sections()}


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate the parsed INI sections against the JSON schema.

    Raises:
        ConfigError: schema missing/invalid, or the data violates it
            (missing [JVSERVER], empty mandatory field, unknown key, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path)
        prefix = f"[{where}] " if where else ""
        raise ConfigError(f"config validation failed: {prefix}{e.message}") from e


def _int(section: dict[str, str], key: str, default: int) -> int:
    raw = section.get(key)
    return int(raw) if raw else default


def load_config(path: Path) -> GateConfig:
    if not path.exists():
        raise ConfigError(f"Could not read configuration file! [{path}]")
    data = _read_ini(path)
    _validate_config_schema(data)

    srv = data[STORE_SECTION]
    gate = data.get(GATE_SECTION, {})

    policy = GatePolicy(
        low_threshold=_int(gate, "LOW_THRESHOLD", 3),
        high_threshold=_int(gate, "HIGH_THRESHOLD", 6),
        connect_attempts=_int(gate, "CONNECT_ATTEMPTS", 3),
    )
    if policy.high_threshold < policy.low_threshold:
        raise ConfigError(
            f"HIGH_THRESHOLD ({policy.high_threshold}) must be >= "
            f"LOW_THRESHOLD ({policy.low_threshold})"
        )

    store = StoreConnectionParams(
        server=srv["SERVER"],
        username=srv["USERNAME"],
        password=srv["PASSWORD"],
        database=srv.get("DATABASE") or None,
        port=int(srv["PORT"]) if srv.get("PORT") else None,
        auth=AuthMode.from_config(srv.get("AUTH")),
        connect_timeout=_int(gate, "CONNECT_TIMEOUT", 10),
        query_timeout=_int(gate, "QUERY_TIMEOUT", 30),
    )

    defaults = StoreSchema()
    schema = StoreSchema(
        table=gate.get("TABLE", defaults.table),
        serial_column=gate.get("SERIAL_COLUMN", defaults.serial_column),
        result_column=gate.get("RESULT_COLUMN", defaults.result_column),
        failed_value=gate.get("FAILED_VALUE", defaults.failed_value),
    )

    # 相対パスは設定ファイルのディレクトリ基準
    base_dir = path.resolve().parent
    golden = Path(gate.get("GOLDEN_SAMPLES", DEFAULT_GOLDEN_SAMPLES))
    error_log_dir = Path(gate["ERROR_LOG_DIR"]) if gate.get("ERROR_LOG_DIR") else None

    return GateConfig(
        store=store,
        policy=policy,
        schema=schema,
        golden_samples_path=golden if golden.is_absolute() else base_dir / golden,
        arg_mode=ArgMode(gate.get("ARG_MODE", ArgMode.PANEL.value).lower()),
        error_log_dir=(
            error_log_dir
            if error_log_dir is None or error_log_dir.is_absolute()
            else base_dir / error_log_dir
        ),
    )
