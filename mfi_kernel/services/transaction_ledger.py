"""
TransactionLedger -- append-only record of money-moving events.

Every disbursement and repayment writes exactly one row to the
``transactions`` table in the same unit of work as the loan change and its
journal entry.  Rows are never updated.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from mfi_kernel.db.types import round_money
from mfi_kernel.logging_config import get_logger
from mfi_kernel.models.money_transaction import MoneyTransaction, TransactionType
from mfi_kernel.services.base import BaseService

logger = get_logger("services.transaction_ledger")


class TransactionLedger(BaseService):
    """Append MoneyTransaction rows.  Flush-only."""

    def record(
        self,
        transaction_type: TransactionType,
        amount: Decimal,
        transaction_date: date,
        reference_number: str,
        actor_id: UUID,
        client_id: UUID | None = None,
        related_loan_id: UUID | None = None,
        journal_entry_id: UUID | None = None,
        description: str | None = None,
    ) -> MoneyTransaction:
        row = MoneyTransaction(
            transaction_type=TransactionType(transaction_type).value,
            amount=round_money(amount),
            transaction_date=transaction_date,
            reference_number=reference_number,
            description=description,
            client_id=client_id,
            related_loan_id=related_loan_id,
            journal_entry_id=journal_entry_id,
            created_by_id=actor_id,
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "money_transaction_recorded",
            extra={
                "transaction_id": str(row.id),
                "transaction_type": row.transaction_type,
                "amount": str(row.amount),
                "reference_number": reference_number,
            },
        )
        return row
