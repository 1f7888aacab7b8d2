"""
mfi_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  It layers, in order: the packaged ``defaults.yaml``;
    the YAML file named by ``MFI_CONFIG_PATH`` (if set); then the
    ``DATABASE_URL`` and ``MFI_LOG_LEVEL`` environment variables.

Architecture position:
    Configuration sits beside ``mfi_kernel``; the kernel never imports it.
    ``mfi_modules.loans.config.LoanConfig.from_engine_config`` and the
    scripts translate it into module inputs.

Failure modes:
    - ``FileNotFoundError`` -- ``MFI_CONFIG_PATH`` names a missing file.
    - ``ValueError`` / ``KeyError`` -- invalid or incomplete configuration.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from mfi_config.loader import load_yaml_file, merge_dicts, parse_engine_config
from mfi_config.schema import (
    AccountDef,
    DatabaseConfig,
    EngineConfig,
    LedgerAccountsConfig,
    LendingConfig,
    LoggingConfig,
)

_logger = logging.getLogger("mfi_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """
    Load the effective engine configuration.

    Args:
        config_path: Override YAML file.  Defaults to ``$MFI_CONFIG_PATH``.
        environ: Environment mapping (defaults to ``os.environ``).
    """
    env = os.environ if environ is None else environ

    data = load_yaml_file(DEFAULTS_PATH)

    override_path = config_path or (
        Path(env["MFI_CONFIG_PATH"]) if env.get("MFI_CONFIG_PATH") else None
    )
    if override_path is not None:
        data = merge_dicts(data, load_yaml_file(override_path))

    if env.get("DATABASE_URL"):
        data = merge_dicts(data, {"database": {"url": env["DATABASE_URL"]}})
    if env.get("MFI_LOG_LEVEL"):
        data = merge_dicts(data, {"logging": {"level": env["MFI_LOG_LEVEL"]}})

    config = parse_engine_config(data)

    _logger.info(
        "config_loaded",
        extra={
            "config_path": str(override_path) if override_path else None,
            "ledger_posting_enabled": config.lending.ledger_posting_enabled,
            "account_count": len(config.chart_of_accounts),
        },
    )
    return config


__all__ = [
    "AccountDef",
    "DatabaseConfig",
    "EngineConfig",
    "LedgerAccountsConfig",
    "LendingConfig",
    "LoggingConfig",
    "get_active_config",
]
