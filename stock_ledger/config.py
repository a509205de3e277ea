"""
Ledger Settings Loader (``stock_ledger.config``).

Responsibility
--------------
Loads the runtime settings of the stock ledger from a YAML file and the
process environment into a frozen ``LedgerSettings`` dataclass.

Precedence (highest first)
--------------------------
1. Environment variables ``DATABASE_URL`` and ``STOCK_LEDGER_LOG_LEVEL``.
2. Values in the YAML file passed to ``load_settings``.
3. Dataclass defaults.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_REFERENCE_PREFIXES: dict[str, str] = {
    "entry": "ENT",
    "exit_delivered": "SAL",
    "exit_returned": "DEV",
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for the stock ledger.

    ``max_retries`` bounds how many times StockLedger re-runs an operation
    that lost a race at the database before surfacing
    ConcurrentUpdateConflictError.
    """

    database_url: str = "sqlite:///stock_ledger.db"
    echo_sql: bool = False
    pool_size: int = 10
    max_overflow: int = 10

    max_retries: int = 3
    retry_backoff_seconds: float = 0.05

    default_minimum_stock: int = 10
    reference_prefixes: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_REFERENCE_PREFIXES)
    )

    recent_activity_limit: int = 10
    stream_batch_size: int = 200

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")
        if self.default_minimum_stock < 0:
            raise ValueError("default_minimum_stock must be >= 0")
        if self.stream_batch_size < 1:
            raise ValueError("stream_batch_size must be >= 1")
        if self.recent_activity_limit < 0:
            raise ValueError("recent_activity_limit must be >= 0")
        missing = set(DEFAULT_REFERENCE_PREFIXES) - set(self.reference_prefixes)
        if missing:
            raise ValueError(
                f"reference_prefixes missing kinds: {', '.join(sorted(missing))}"
            )
        prefixes = list(self.reference_prefixes.values())
        if len(set(prefixes)) != len(prefixes):
            raise ValueError("reference_prefixes must be distinct per kind")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level {self.log_level!r}")

    def prefix_for(self, kind: str) -> str:
        """Reference prefix for a movement kind value."""
        return self.reference_prefixes[kind]


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """Build LedgerSettings from a parsed mapping, rejecting unknown keys."""
    known = {f.name for f in fields(LedgerSettings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(sorted(unknown))}")

    values = dict(data)
    if "reference_prefixes" in values:
        prefixes = dict(DEFAULT_REFERENCE_PREFIXES)
        prefixes.update(values["reference_prefixes"] or {})
        values["reference_prefixes"] = prefixes
    return LedgerSettings(**values)


def apply_environment(
    settings: LedgerSettings,
    environ: dict[str, str] | None = None,
) -> LedgerSettings:
    """Overlay environment variables on top of file settings."""
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    if env.get("DATABASE_URL"):
        overrides["database_url"] = env["DATABASE_URL"]
    if env.get("STOCK_LEDGER_LOG_LEVEL"):
        overrides["log_level"] = env["STOCK_LEDGER_LOG_LEVEL"].upper()
    return replace(settings, **overrides) if overrides else settings


def load_settings(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> LedgerSettings:
    """
    Load settings from an optional YAML file plus the environment.

    Args:
        path: YAML settings file. If None, only defaults and environment apply.
        environ: Environment mapping (defaults to ``os.environ``).
    """
    data = load_yaml_file(Path(path)) if path is not None else {}
    return apply_environment(parse_settings(data), environ)
