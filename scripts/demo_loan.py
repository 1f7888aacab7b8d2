#!/usr/bin/env python3
"""
Walk one loan through its lifecycle and print the books.

Creates the schema and chart of accounts if needed, then creates a loan,
disburses it, pays the requested number of installments and prints the
schedule, the trial balance and the loan portfolio.

Usage:
    python3 scripts/demo_loan.py
    python3 scripts/demo_loan.py --method diminishing --principal 120000 --rate 12 --tenure 12
    python3 scripts/demo_loan.py --db-url sqlite:///demo.db --pay 12
"""

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DEMO_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000002")


def print_schedule(detail) -> None:
    print()
    print(f"  {'#':>3}  {'Due':<10}  {'EMI':>12}  {'Principal':>12}  {'Interest':>10}  {'Remaining':>12}  Paid")
    print("  " + "-" * 76)
    for row in detail.schedule:
        paid = "yes" if row.is_paid else ""
        print(
            f"  {row.installment_number:>3}  {row.due_date.isoformat():<10}  "
            f"{row.emi_amount:>12,.2f}  {row.principal_amount:>12,.2f}  "
            f"{row.interest_amount:>10,.2f}  {row.remaining_principal:>12,.2f}  {paid}"
        )


def print_trial_balance(report) -> None:
    print()
    print(f"  TRIAL BALANCE as of {report.metadata.as_of_date.isoformat()}")
    print(f"  {'Code':<6}  {'Account':<28}  {'Debit':>12}  {'Credit':>12}")
    print("  " + "-" * 64)
    for line in report.lines:
        print(
            f"  {line.account_code:<6}  {line.account_name:<28}  "
            f"{line.debit_balance:>12,.2f}  {line.credit_balance:>12,.2f}"
        )
    print("  " + "-" * 64)
    status = "BALANCED" if report.is_balanced else "OUT OF BALANCE"
    print(
        f"  {'TOTAL':<6}  {status:<28}  "
        f"{report.total_debits:>12,.2f}  {report.total_credits:>12,.2f}"
    )


def print_portfolio(report) -> None:
    print()
    print("  LOAN PORTFOLIO (all statuses)")
    for group in report.by_status:
        print(
            f"    {group.status.value:<10} {len(group.loans):>3} loans  "
            f"principal {group.total_principal:>12,.2f}  remaining {group.total_remaining:>12,.2f}"
        )
    for summary in report.by_method:
        print(
            f"    {summary.calculation_method.value:<12} active {summary.active_count:>3}  "
            f"principal {summary.total_principal:>12,.2f}  avg rate {summary.average_interest_rate}%"
        )


def main() -> int:
    parser = argparse.ArgumentParser(description="Loan lifecycle demo")
    parser.add_argument("--db-url", default="sqlite:///mfi_demo.db", help="Database URL")
    parser.add_argument("--method", choices=["flat", "diminishing"], default="flat")
    parser.add_argument("--principal", default="100000")
    parser.add_argument("--rate", default="12")
    parser.add_argument("--tenure", type=int, default=12)
    parser.add_argument("--pay", type=int, default=3, help="Installments to pay")
    parser.add_argument("--start", default="2024-01-15", help="Disbursement date (ISO)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show JSON logs")
    args = parser.parse_args()

    from mfi_config import get_active_config
    from mfi_kernel.db.engine import create_tables, get_session, init_engine_from_url, reset_engine
    from mfi_kernel.exceptions import MfiKernelError
    from mfi_kernel.logging_config import configure_logging
    from mfi_modules.gl import GeneralLedgerService
    from mfi_modules.loans import LoanConfig, LoanService
    from mfi_modules.reporting import ReportingService

    if args.verbose:
        configure_logging(level=logging.DEBUG, fmt="text")
    else:
        logging.disable(logging.CRITICAL)

    config = get_active_config()
    init_engine_from_url(args.db_url)
    create_tables()

    session = get_session()
    try:
        GeneralLedgerService(session).seed_chart_of_accounts(
            config.chart_of_accounts, actor_id=DEMO_ACTOR_ID,
        )
        loans = LoanService(session, config=LoanConfig.from_engine_config(config))

        start = date.fromisoformat(args.start)
        created = loans.create_loan(
            client_id=uuid4(),
            principal=Decimal(args.principal),
            annual_rate=Decimal(args.rate),
            tenure_months=args.tenure,
            calculation_method=args.method,
            disbursement_date=start,
            actor_id=DEMO_ACTOR_ID,
        )
        loan = created.loan
        print(
            f"  Loan {loan.id} ({loan.calculation_method.value}): "
            f"EMI {loan.emi_amount:,.2f}, interest {loan.total_interest:,.2f}, "
            f"total {loan.total_amount:,.2f}"
        )

        loans.disburse(loan.id, actor_id=DEMO_ACTOR_ID)
        for row in created.schedule[: args.pay]:
            receipt = loans.record_payment(
                loan_id=loan.id,
                installment_number=row.installment_number,
                amount=row.emi_amount,
                payment_date=row.due_date,
                actor_id=DEMO_ACTOR_ID,
            )
            print(
                f"  Paid #{row.installment_number}: remaining {receipt.remaining_amount:,.2f} "
                f"({receipt.loan_status.value})"
            )

        print_schedule(loans.get_loan(loan.id))
        reports = ReportingService(session)
        print_trial_balance(reports.trial_balance())
        print_portfolio(reports.loan_portfolio(status=None))
    except MfiKernelError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()
        reset_engine()
    return 0


if __name__ == "__main__":
    sys.exit(main())
