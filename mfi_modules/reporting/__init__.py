"""
Reporting module: trial balance, loan portfolio and journal listing.
"""

from mfi_modules.reporting.models import (
    CalculationModeSummary,
    JournalListingReport,
    LoanPortfolioReport,
    ReportMetadata,
    ReportType,
    StatusGroup,
    TrialBalanceLineItem,
    TrialBalanceReport,
)
from mfi_modules.reporting.service import ReportingService
from mfi_modules.reporting.statements import render_to_dict

__all__ = [
    "CalculationModeSummary",
    "JournalListingReport",
    "LoanPortfolioReport",
    "ReportMetadata",
    "ReportType",
    "ReportingService",
    "StatusGroup",
    "TrialBalanceLineItem",
    "TrialBalanceReport",
    "render_to_dict",
]
