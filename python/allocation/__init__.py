"""
Marketing Budget Allocation Module

Allocates a project's cost down the marketing / CP / Other / year / quarter
hierarchy, keeps every level consistent under edits, and validates the
result before it is saved.
"""

from .coercion import amount_from_percent, percent_from_amount, round2, to_decimal
from .models import AllocationState, BudgetCategory, QuarterRecord, YearRecord
from .reconciliation import AdvisoryMismatch, ReconciliationEngine
from .validation import (
    CommitValidationError,
    PlannedBudgetMismatch,
    ValidationEngine,
    ValidationResult,
    YearQuarterMismatch,
)
from .session import (
    BudgetDefaults,
    BudgetPersister,
    BudgetSession,
    CommitResult,
    DefaultBudgetProvider,
    LoggingNotifier,
    Notification,
    Notifier,
    ProjectCostSource,
    Receipt,
)

__all__ = [
    # Coercion
    "to_decimal",
    "round2",
    "amount_from_percent",
    "percent_from_amount",
    # State
    "AllocationState",
    "BudgetCategory",
    "YearRecord",
    "QuarterRecord",
    # Reconciliation
    "ReconciliationEngine",
    "AdvisoryMismatch",
    # Validation
    "ValidationEngine",
    "ValidationResult",
    "CommitValidationError",
    "PlannedBudgetMismatch",
    "YearQuarterMismatch",
    # Session
    "BudgetSession",
    "BudgetDefaults",
    "Receipt",
    "Notification",
    "CommitResult",
    "DefaultBudgetProvider",
    "ProjectCostSource",
    "BudgetPersister",
    "Notifier",
    "LoggingNotifier",
]
