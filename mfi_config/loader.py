"""
Configuration loader (``mfi_config.loader``).

Responsibility
--------------
Reads YAML documents and parses them into the frozen dataclasses of
``mfi_config.schema``.  Runtime callers go through
``mfi_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown account type, calculation method or log format  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from mfi_config.schema import (
    AccountDef,
    DatabaseConfig,
    EngineConfig,
    LedgerAccountsConfig,
    LendingConfig,
    LoggingConfig,
)

_ACCOUNT_TYPES = frozenset({"asset", "liability", "equity", "revenue", "expense"})
_CALCULATION_METHODS = frozenset({"flat", "diminishing"})
_LOG_FORMATS = frozenset({"json", "text"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.  Lists are replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 10)),
        max_overflow=int(data.get("max_overflow", 20)),
        pool_timeout=int(data.get("pool_timeout", 30)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    fmt = str(data.get("format", "json")).lower()
    if fmt not in _LOG_FORMATS:
        raise ValueError(f"Unknown log format in config: {fmt!r}")
    return LoggingConfig(level=str(data.get("level", "INFO")).upper(), format=fmt)


def parse_lending(data: dict[str, Any]) -> LendingConfig:
    method = str(data.get("default_calculation_method", "flat"))
    if method not in _CALCULATION_METHODS:
        raise ValueError(f"Unknown calculation method in config: {method!r}")
    return LendingConfig(
        ledger_posting_enabled=bool(data.get("ledger_posting_enabled", True)),
        default_calculation_method=method,
    )


def parse_account_def(data: dict[str, Any]) -> AccountDef:
    account_type = data["type"]
    if account_type not in _ACCOUNT_TYPES:
        raise ValueError(f"Unknown account type for {data.get('code')!r}: {account_type!r}")
    parent = data.get("parent")
    return AccountDef(
        code=str(data["code"]),
        name=data["name"],
        account_type=account_type,
        parent_code=str(parent) if parent is not None else None,
    )


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Build an ``EngineConfig`` from a merged configuration dict.

    Raises:
        KeyError: if ``database.url`` is missing.
        ValueError: on unknown enum-like values.
    """
    accounts = data.get("ledger_accounts", {})
    return EngineConfig(
        database=parse_database(data["database"]),
        logging=parse_logging(data.get("logging", {})),
        lending=parse_lending(data.get("lending", {})),
        ledger_accounts=LedgerAccountsConfig(
            **{key: str(value) for key, value in accounts.items()}
        ),
        chart_of_accounts=tuple(
            parse_account_def(item) for item in data.get("chart_of_accounts", [])
        ),
    )
