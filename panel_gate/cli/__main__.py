from __future__ import annotations

import argparse
import os
import sys
from functools import partial
from pathlib import Path

from dotenv import load_dotenv

from panel_gate.config.loader import ConfigError, load_config
from panel_gate.db.result_store import open_result_store
from panel_gate.logging.error_log import FaultJournal, FaultRecord
from panel_gate.logging.init import enable_debug, log_result, setup_logging
from panel_gate.models.classification import Classification
from panel_gate.models.config_models import ArgMode, GateConfig, StoreConnectionParams
from panel_gate.services.gate import DecisionEngine
from panel_gate.services.golden_samples import load_golden_samples
from panel_gate.services.result_line import render_result_line

"""CLI entrypoint.

usage:
    panel-gate [--config PATH] [--debug | -v] SERIAL [EXTRA]

Without --config or PANEL_GATE_CONFIG, config.ini is looked up next to the
executable first (stations launch the gate from their own working directory),
then in the working directory.

Prints exactly one line on stdout (GS / OK / NK / ER, see services/result_line.py)
and exits 0 whenever a classification was reached, 1 on ER.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1

DEFAULT_CONFIG = "config.ini"
MAX_PANEL_SIZE = 255
VERBOSE_TOKENS = frozenset({"v", "-v", "verbose", "--verbose"})

# 環境変数 -> StoreConnectionParams フィールド (.env が最優先)
ENV_OVERRIDES = {
    "PANEL_GATE_SERVER": "server",
    "PANEL_GATE_PORT": "port",
    "PANEL_GATE_USERNAME": "username",
    "PANEL_GATE_PASSWORD": "password",
    "PANEL_GATE_DATABASE": "database",
}


class UsageError(Exception):
    pass


class _ArgumentParser(argparse.ArgumentParser):
    """argparse that raises instead of exiting, so usage errors stay on the ER line."""

    def error(self, message: str):  # type: ignore[override]
        raise UsageError(message)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = _ArgumentParser(
        prog="panel-gate",
        description="Retest gate: decide whether a unit/panel may be tested again",
        add_help=False,
    )
    p.add_argument("--config", help="Path to station INI file")
    p.add_argument("--debug", action="store_true", help="Enable debug diagnostics on stderr")
    p.add_argument("-v", "--verbose", action="store_true", help="Same as --debug")
    p.add_argument("serial", nargs="?", help="Scanned unit identifier (data-matrix code)")
    p.add_argument("extra", nargs="?", help="Boards on panel, or verbosity token (ARG_MODE)")
    # 余分な引数は従来どおり無視する
    args, ignored = p.parse_known_args(argv)
    args.ignored = ignored
    return args


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; failures only warn."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except Exception as e:  # pragma: no cover
        print(f"WARN failed to load .env via python-dotenv: {e}", file=sys.stderr)


def _resolve_store_params(params: StoreConnectionParams) -> StoreConnectionParams:
    changes: dict[str, object] = {}
    for env_name, field in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None:
            continue
        if field == "port":
            try:
                changes[field] = int(value) if value else None
            except ValueError as e:
                raise ConfigError(f"{env_name} must be an integer: {value!r}") from e
        elif field == "database":
            changes[field] = value or None
        else:
            changes[field] = value
    return params.with_overrides(**changes) if changes else params


def _panel_size(extra: str | None) -> int:
    """Boards on panel; anything absent or unparsable falls back to 1."""
    if extra is None:
        return 1
    # ASCII の数字のみ ("1_0", " 4 " 等は int() が通すので弾く)
    if not (extra.isascii() and extra.isdigit()):
        return 1
    n = int(extra)
    return n if 1 <= n <= MAX_PANEL_SIZE else 1


def _default_config_path() -> Path:
    beside_exe = Path(sys.argv[0]).resolve().parent / DEFAULT_CONFIG
    if beside_exe.is_file():
        return beside_exe
    return Path(DEFAULT_CONFIG)


def _interpret_extra(extra: str | None, mode: ArgMode) -> tuple[int, bool]:
    """Return (panel_size, verbose) for the optional second argument."""
    if mode is ArgMode.VERBOSE:
        verbose = extra is not None and extra.strip().lower() in VERBOSE_TOKENS
        return 1, verbose
    return _panel_size(extra), False


def _journal_fault(cfg: GateConfig | None, serial: str, panel_size: int,
                   error_type: str, message: str) -> None:
    if cfg is None or cfg.error_log_dir is None:
        return
    record = FaultRecord.create(serial, panel_size, error_type, message)
    try:
        FaultJournal(cfg.error_log_dir).append(record)
    except OSError as e:
        setup_logging().warning(f"fault journal not written: {e}")


def _report(classification: Classification) -> int:
    log_result(render_result_line(classification))
    return EXIT_FATAL if classification.is_error else EXIT_SUCCESS


def run(argv: list[str]) -> int:
    logger = setup_logging()
    cfg: GateConfig | None = None
    serial = ""
    panel_size = 1

    try:
        args = _parse_args(argv)
        if args.debug or args.verbose:
            enable_debug()
        if args.ignored:
            logger.debug(f"ignored arguments: {args.ignored}")

        # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
        _load_env_file(Path(".env"), override=True)
        explicit = args.config or os.getenv("PANEL_GATE_CONFIG")
        config_path = Path(explicit) if explicit else _default_config_path()
        cfg = load_config(config_path)
        store_params = _resolve_store_params(cfg.store)

        if not args.serial:
            raise UsageError("No argument found!")
        serial = args.serial

        panel_size, verbose = _interpret_extra(args.extra, cfg.arg_mode)
        if verbose and not (args.debug or args.verbose):
            enable_debug()
        logger.debug(f"serial={serial} panel_size={panel_size} config={config_path}")
    except ConfigError as e:
        logger.debug(f"config: {e}")
        _journal_fault(cfg, serial, panel_size, "CONFIG_ERROR", str(e))
        return _report(Classification.error(str(e)))
    except UsageError as e:
        _journal_fault(cfg, serial, panel_size, "USAGE_ERROR", str(e))
        return _report(Classification.error(str(e)))

    error_type = "GATE_ERROR"
    try:
        engine = DecisionEngine(
            policy=cfg.policy,
            golden_samples=load_golden_samples(cfg.golden_samples_path),
            session_factory=partial(
                open_result_store,
                store_params,
                cfg.policy.connect_attempts,
                cfg.schema,
            ),
        )
        classification = engine.classify(serial, panel_size)
    except Exception as e:
        # 想定外の例外も ER 行 + ジャーナルに残す
        logger.debug("unexpected error", exc_info=True)
        classification = Classification.error(f"unexpected error: {e}")
        error_type = "UNEXPECTED_ERROR"
    if classification.is_error:
        _journal_fault(cfg, serial, panel_size, error_type, classification.message or "")
    return _report(classification)


def main(argv: list[str] | None = None) -> int:
    # None のときのみシステム引数を読む ([] はテストからの明示的な空引数)
    if argv is None:
        argv = sys.argv[1:]
    try:
        return run(argv)
    except Exception as e:
        # 想定外の例外でも station には必ず 1 行返す
        setup_logging().debug("unexpected error", exc_info=True)
        return _report(Classification.error(f"unexpected error: {e}"))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
