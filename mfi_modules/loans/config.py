"""
Lending Configuration Schema (``mfi_modules.loans.config``).

Responsibility
--------------
Settings the lending module needs at runtime: the chart-of-accounts codes
it posts disbursements and repayments to, whether ledger posting is on,
and the default calculation method.

Architecture position
---------------------
**Modules layer** -- configuration schema only.  Built from
``mfi_config.get_active_config()`` via ``LoanConfig.from_engine_config``;
no component here reads files or environment variables.

Failure modes
-------------
* ``ValueError`` at construction if an account code is blank.
"""

from dataclasses import dataclass, field
from typing import Self

from mfi_config.schema import EngineConfig
from mfi_kernel.logging_config import get_logger
from mfi_modules.loans.models import CalculationMethod
from mfi_modules.loans.profiles import AccountRole

logger = get_logger("modules.loans.config")


@dataclass(frozen=True)
class LoanAccountCodes:
    """Account codes used by disbursement and repayment entries."""

    cash: str = "1000"
    loan_portfolio: str = "1200"
    client_deposits: str = "2100"
    interest_income: str = "4000"
    fee_income: str = "4100"

    def __post_init__(self):
        for name in ("cash", "loan_portfolio", "client_deposits", "interest_income", "fee_income"):
            if not getattr(self, name).strip():
                raise ValueError(f"Account code for {name} must not be blank")

    def code_for(self, role: AccountRole) -> str:
        return getattr(self, role.value)

    def all_codes(self) -> tuple[str, ...]:
        return (
            self.cash,
            self.loan_portfolio,
            self.client_deposits,
            self.interest_income,
            self.fee_income,
        )


@dataclass(frozen=True)
class LoanConfig:
    """Lending module configuration."""

    accounts: LoanAccountCodes = field(default_factory=LoanAccountCodes)
    ledger_posting_enabled: bool = True
    default_calculation_method: CalculationMethod = CalculationMethod.FLAT

    @classmethod
    def from_engine_config(cls, config: EngineConfig) -> Self:
        codes = config.ledger_accounts
        instance = cls(
            accounts=LoanAccountCodes(
                cash=codes.cash,
                loan_portfolio=codes.loan_portfolio,
                client_deposits=codes.client_deposits,
                interest_income=codes.interest_income,
                fee_income=codes.fee_income,
            ),
            ledger_posting_enabled=config.lending.ledger_posting_enabled,
            default_calculation_method=CalculationMethod(
                config.lending.default_calculation_method
            ),
        )
        logger.info(
            "loan_config_loaded",
            extra={
                "ledger_posting_enabled": instance.ledger_posting_enabled,
                "default_calculation_method": instance.default_calculation_method.value,
                "account_codes": list(instance.accounts.all_codes()),
            },
        )
        return instance
