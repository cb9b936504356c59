"""
Allocation State Module

Data model for one budget allocation editing session: project cost,
marketing/CP/Other categories, and the year/quarter distribution table.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .coercion import ZERO, round2, to_decimal

logger = logging.getLogger(__name__)

QUARTERS_PER_YEAR = 4


def quarter_label(year: int, quarter: int) -> str:
    """Build a quarter label such as "Y2Q3"."""
    return f"Y{year}Q{quarter}"


@dataclass
class BudgetCategory:
    """Percent/amount pair for one budget category."""

    percent: Decimal = ZERO
    amount: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "percent": float(self.percent),
            "amount": float(self.amount),
        }


@dataclass
class QuarterRecord:
    """Single quarter of a year's distribution."""

    label: str
    amount: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "amount": float(self.amount),
        }


@dataclass
class YearRecord:
    """One year of the planned budget distribution."""

    year: int
    percent: Decimal = ZERO
    total_budget: Decimal = ZERO
    lead_target: Decimal = ZERO
    quarters: list[QuarterRecord] = field(default_factory=list)
    manually_edited: bool = False
    warning_active: bool = False

    def __post_init__(self):
        if not self.quarters:
            self.quarters = [
                QuarterRecord(label=quarter_label(self.year, n))
                for n in range(1, QUARTERS_PER_YEAR + 1)
            ]

    @property
    def quarter_sum(self) -> Decimal:
        """Sum of all quarter amounts (unrounded)."""
        return sum((q.amount for q in self.quarters), ZERO)

    @property
    def is_reconciled(self) -> bool:
        """Whether the quarters add up to the year total, to the cent."""
        return round2(self.quarter_sum) == round2(self.total_budget)

    def get_quarter(self, label: str) -> QuarterRecord | None:
        for quarter in self.quarters:
            if quarter.label == label:
                return quarter
        return None

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "percent": float(self.percent),
            "total_budget": float(self.total_budget),
            "lead_target": float(self.lead_target),
            "manually_edited": self.manually_edited,
            "warning_active": self.warning_active,
            "quarters": [q.to_dict() for q in self.quarters],
        }


@dataclass
class AllocationState:
    """Complete allocation hierarchy for one editing session."""

    project_cost: Decimal = ZERO
    marketing: BudgetCategory = field(default_factory=BudgetCategory)
    cp: BudgetCategory = field(default_factory=BudgetCategory)
    other: BudgetCategory = field(default_factory=BudgetCategory)
    years: list[YearRecord] = field(default_factory=list)
    project_id: str | None = None

    @property
    def number_of_years(self) -> int:
        return len(self.years)

    @property
    def planned_budget(self) -> Decimal:
        """Marketing amount left for yearly distribution."""
        return round2(self.marketing.amount - self.cp.amount - self.other.amount)

    @property
    def used_budget(self) -> Decimal:
        """Sum of all year totals."""
        return sum((y.total_budget for y in self.years), ZERO)

    @property
    def remaining_budget(self) -> Decimal:
        """Planned budget not yet assigned to a year, floored at zero."""
        return max(ZERO, round2(self.planned_budget - self.used_budget))

    def get_year(self, year: int) -> YearRecord | None:
        """Get a year record by its 1-based year number."""
        for record in self.years:
            if record.year == year:
                return record
        return None

    def category(self, group: str) -> BudgetCategory | None:
        """Get a category by group name ('marketing', 'cp' or 'other')."""
        return {
            "marketing": self.marketing,
            "cp": self.cp,
            "other": self.other,
        }.get(group)

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "project_cost": float(self.project_cost),
            "marketing": self.marketing.to_dict(),
            "cp": self.cp.to_dict(),
            "other": self.other.to_dict(),
            "number_of_years": self.number_of_years,
            "planned_budget": float(self.planned_budget),
            "used_budget": float(self.used_budget),
            "remaining_budget": float(self.remaining_budget),
            "years": [y.to_dict() for y in self.years],
        }

    def to_summary(self) -> dict:
        """Build the summary handed to a budget persister.

        Returns:
            Dictionary with category percents/amounts and the ordered
            year distribution, each year carrying its quarters
        """
        return {
            "project_id": self.project_id,
            "marketing_percent": float(self.marketing.percent),
            "marketing_amount": float(self.marketing.amount),
            "cp_percent": float(self.cp.percent),
            "cp_amount": float(self.cp.amount),
            "other_percent": float(self.other.percent),
            "other_amount": float(self.other.amount),
            "planned_budget": float(self.planned_budget),
            "year_distributions": [
                {
                    "year": y.year,
                    "percent": float(y.percent),
                    "total_budget": float(y.total_budget),
                    "lead_target": float(y.lead_target),
                    "quarters": [q.to_dict() for q in y.quarters],
                }
                for y in self.years
            ],
        }

    @classmethod
    def from_summary(cls, summary: dict[str, Any], project_cost: Any = None) -> "AllocationState":
        """Rebuild a state from a saved summary.

        Years are renumbered by position and flagged as manually edited,
        since their quarters come from storage rather than an even split.

        Args:
            summary: Dictionary in the to_summary() shape
            project_cost: Current project cost, if known

        Returns:
            AllocationState
        """
        state = cls(
            project_cost=max(ZERO, to_decimal(project_cost)),
            marketing=BudgetCategory(
                percent=round2(summary.get("marketing_percent")),
                amount=round2(summary.get("marketing_amount")),
            ),
            cp=BudgetCategory(
                percent=round2(summary.get("cp_percent")),
                amount=round2(summary.get("cp_amount")),
            ),
            other=BudgetCategory(
                percent=round2(summary.get("other_percent")),
                amount=round2(summary.get("other_amount")),
            ),
            project_id=summary.get("project_id"),
        )

        for index, year_data in enumerate(summary.get("year_distributions") or [], start=1):
            saved_quarters = year_data.get("quarters") or []
            quarters = []
            for n in range(1, QUARTERS_PER_YEAR + 1):
                saved = saved_quarters[n - 1] if n <= len(saved_quarters) else {}
                quarters.append(QuarterRecord(
                    label=quarter_label(index, n),
                    amount=round2(saved.get("amount")),
                ))

            state.years.append(YearRecord(
                year=index,
                percent=round2(year_data.get("percent")),
                total_budget=round2(year_data.get("total_budget")),
                lead_target=to_decimal(year_data.get("lead_target")),
                quarters=quarters,
                manually_edited=True,
            ))

        logger.debug(f"Restored allocation state with {state.number_of_years} years")
        return state
