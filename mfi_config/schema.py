"""
Engine configuration schema.

Frozen dataclasses produced by ``mfi_config.loader`` from YAML.  No
behaviour beyond simple lookups.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30


@dataclass(frozen=True)
class LoggingConfig:
    """Level and output format (``json`` or ``text``) for the mfi_kernel logger."""

    level: str = "INFO"
    format: str = "json"


@dataclass(frozen=True)
class LendingConfig:
    """Switches for the lending module."""

    ledger_posting_enabled: bool = True
    default_calculation_method: str = "flat"


@dataclass(frozen=True)
class LedgerAccountsConfig:
    """Account codes the lending module posts disbursements and repayments to."""

    cash: str = "1000"
    loan_portfolio: str = "1200"
    client_deposits: str = "2100"
    interest_income: str = "4000"
    fee_income: str = "4100"


@dataclass(frozen=True)
class AccountDef:
    """One node of the seed chart of accounts."""

    code: str
    name: str
    account_type: str
    parent_code: str | None = None


@dataclass(frozen=True)
class EngineConfig:
    """The complete runtime configuration."""

    database: DatabaseConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    lending: LendingConfig = field(default_factory=LendingConfig)
    ledger_accounts: LedgerAccountsConfig = field(default_factory=LedgerAccountsConfig)
    chart_of_accounts: tuple[AccountDef, ...] = ()

    def account_def(self, code: str) -> AccountDef | None:
        for account in self.chart_of_accounts:
            if account.code == code:
                return account
        return None
