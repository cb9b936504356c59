"""
Commit Validation Module

Checks that the allocation reconciles to the cent before it may be saved.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from .coercion import ZERO, round2
from .models import AllocationState

logger = logging.getLogger(__name__)


@dataclass
class CommitValidationError:
    """Base class for errors that block a save."""

    expected: Decimal
    actual: Decimal

    code = "commit_validation_error"

    @property
    def message(self) -> str:
        return f"Expected {self.expected:.2f}, got {self.actual:.2f}."

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "expected": float(self.expected),
            "actual": float(self.actual),
            "message": self.message,
        }


@dataclass
class PlannedBudgetMismatch(CommitValidationError):
    """Year totals do not add up to the planned budget."""

    code = "planned_budget_mismatch"

    @property
    def message(self) -> str:
        return (
            f"Sum of all year totals ({self.actual:.2f}) must exactly equal "
            f"the Planned Budget ({self.expected:.2f})."
        )


@dataclass
class YearQuarterMismatch(CommitValidationError):
    """A year's quarters do not add up to its total."""

    year: int = 0

    code = "year_quarter_mismatch"

    @property
    def message(self) -> str:
        return (
            f"Sum of quarters for Year {self.year} ({self.actual:.2f}) must equal "
            f"that year's planned budget ({self.expected:.2f})."
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["year"] = self.year
        return data


@dataclass
class ValidationResult:
    """Outcome of a commit validation."""

    error: CommitValidationError | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "error": self.error.to_dict() if self.error else None,
        }


class ValidationEngine:
    """Hard gate run immediately before persistence."""

    def validate_for_commit(self, state: AllocationState) -> ValidationResult:
        """Validate that every level of the allocation reconciles.

        Checks, in order:
            1. Sum of year totals equals the planned budget.
            2. For each year, its quarters sum to its total. The first
               failing year is reported and later years are not checked.

        Args:
            state: AllocationState to validate

        Returns:
            ValidationResult with the first error found, if any
        """
        planned = state.planned_budget
        total_year_amount = sum((y.total_budget for y in state.years), ZERO)

        if round2(total_year_amount) != planned:
            logger.info(f"Year totals {total_year_amount} do not match planned budget {planned}")
            return ValidationResult(error=PlannedBudgetMismatch(
                expected=planned,
                actual=round2(total_year_amount),
            ))

        for record in state.years:
            quarter_sum = record.quarter_sum
            if round2(quarter_sum) != round2(record.total_budget):
                logger.info(f"Quarters of year {record.year} sum to {quarter_sum}, expected {record.total_budget}")
                return ValidationResult(error=YearQuarterMismatch(
                    expected=round2(record.total_budget),
                    actual=round2(quarter_sum),
                    year=record.year,
                ))

        return ValidationResult()
