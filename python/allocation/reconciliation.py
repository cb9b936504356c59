"""
Reconciliation Engine Module

Recomputes dependent fields whenever a single field of the allocation
hierarchy is edited.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from .coercion import (
    ZERO,
    amount_from_percent,
    percent_from_amount,
    round2,
    to_count,
    to_decimal,
)
from .models import QUARTERS_PER_YEAR, AllocationState, YearRecord

logger = logging.getLogger(__name__)

CATEGORY_GROUPS = ("marketing", "cp", "other")
CATEGORY_FIELDS = ("percent", "amount")
WARNING_POLICIES = ("reconcile", "sticky")


@dataclass
class AdvisoryMismatch:
    """Non-blocking warning: a year's quarters no longer add up to its total."""

    year: int
    expected: Decimal
    actual: Decimal
    raised_at: datetime = field(default_factory=datetime.now)

    @property
    def message(self) -> str:
        return (
            f"Sum of quarters ({self.actual:.2f}) does not match the planned budget "
            f"({self.expected:.2f}) for Year {self.year}."
        )

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "expected": float(self.expected),
            "actual": float(self.actual),
            "message": self.message,
            "raised_at": self.raised_at.isoformat(),
        }


class ReconciliationEngine:
    """Applies edits to an AllocationState and keeps its levels consistent."""

    def __init__(self, config_dir: Path | str | None = None):
        """Initialize the engine.

        Args:
            config_dir: Path to configuration directory
        """
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent.parent.parent / "config"
        self._load_config()

    def _load_config(self) -> None:
        """Load allocation configuration."""
        config_file = self.config_dir / "allocation_config.yaml"
        if config_file.exists():
            with open(config_file) as f:
                self.config = yaml.safe_load(f) or {}
        else:
            logger.warning(f"Config file not found: {config_file}")
            self.config = self._default_config()

        policy = (self.config.get("advisory") or {}).get("warning_policy", "reconcile")
        if policy not in WARNING_POLICIES:
            logger.warning(f"Unknown warning policy '{policy}', using 'reconcile'")
            policy = "reconcile"
        self.warning_policy = policy

    def _default_config(self) -> dict:
        """Get default configuration."""
        return {
            "years": {
                "default_count": 1,
                "reset_count": 1,
            },
            "advisory": {
                "warning_policy": "reconcile",
            },
        }

    # ------------------------------------------------------------------
    # Top level
    # ------------------------------------------------------------------

    def set_project_cost(self, state: AllocationState, value: Any) -> AllocationState:
        """Set the project cost and recompute every category amount.

        Percentages are kept; amounts follow the new cost.
        """
        state.project_cost = max(ZERO, to_decimal(value))
        self.recalculate_amounts(state)
        return state

    def recalculate_amounts(self, state: AllocationState) -> AllocationState:
        """Recompute marketing, CP and Other amounts from their percents."""
        state.marketing.amount = amount_from_percent(state.project_cost, state.marketing.percent)
        self._cascade_subcategories(state)
        logger.debug(
            f"Recalculated amounts: marketing={state.marketing.amount} "
            f"cp={state.cp.amount} other={state.other.amount}"
        )
        return state

    def set_year_count(self, state: AllocationState, value: Any) -> AllocationState:
        """Regenerate the year table with a fresh set of zeroed years.

        Any previous year data is discarded, including when the count
        shrinks; old positions have no mapping onto the new table.
        """
        count = to_count(value)
        state.years = [YearRecord(year=i) for i in range(1, count + 1)]
        logger.debug(f"Generated {count} year tables")
        return state

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def apply_category_edit(
        self,
        state: AllocationState,
        group: str,
        field_name: str,
        value: Any,
    ) -> AllocationState:
        """Apply a percent or amount edit to a category.

        Args:
            state: State to mutate
            group: 'marketing', 'cp' or 'other'
            field_name: 'percent' or 'amount'
            value: Raw input value

        Returns:
            The mutated state
        """
        if group not in CATEGORY_GROUPS or field_name not in CATEGORY_FIELDS:
            logger.warning(f"Ignoring edit to unknown field {group}.{field_name}")
            return state

        category = state.category(group)
        parent = self._category_parent(state, group)

        if field_name == "percent":
            category.percent = round2(value)
            category.amount = amount_from_percent(parent, category.percent)
        else:
            category.amount = round2(value)
            category.percent = percent_from_amount(category.amount, parent)

        if group == "marketing":
            self._cascade_subcategories(state)

        return state

    def set_marketing_percent(self, state: AllocationState, value: Any) -> AllocationState:
        return self.apply_category_edit(state, "marketing", "percent", value)

    def set_marketing_amount(self, state: AllocationState, value: Any) -> AllocationState:
        return self.apply_category_edit(state, "marketing", "amount", value)

    def set_cp_percent(self, state: AllocationState, value: Any) -> AllocationState:
        return self.apply_category_edit(state, "cp", "percent", value)

    def set_cp_amount(self, state: AllocationState, value: Any) -> AllocationState:
        return self.apply_category_edit(state, "cp", "amount", value)

    def set_other_percent(self, state: AllocationState, value: Any) -> AllocationState:
        return self.apply_category_edit(state, "other", "percent", value)

    def set_other_amount(self, state: AllocationState, value: Any) -> AllocationState:
        return self.apply_category_edit(state, "other", "amount", value)

    def _category_parent(self, state: AllocationState, group: str) -> Decimal:
        # CP and Other are shares of the marketing amount, not of project cost
        if group == "marketing":
            return state.project_cost
        return state.marketing.amount

    def _cascade_subcategories(self, state: AllocationState) -> None:
        for sub in (state.cp, state.other):
            sub.amount = amount_from_percent(state.marketing.amount, sub.percent)

    # ------------------------------------------------------------------
    # Years and quarters
    # ------------------------------------------------------------------

    def set_year_total(self, state: AllocationState, year: int, value: Any) -> YearRecord | None:
        """Set a year's total and split it evenly across its quarters.

        Args:
            state: State to mutate
            year: 1-based year number
            value: Raw total input

        Returns:
            Updated YearRecord, or None if the year does not exist
        """
        record = self._find_year(state, year)
        if record is None:
            return None

        record.total_budget = round2(value)
        record.percent = percent_from_amount(record.total_budget, state.planned_budget)
        self._redistribute(record)
        return record

    def set_year_percent(self, state: AllocationState, year: int, value: Any) -> YearRecord | None:
        """Set a year's share of the planned budget and split it evenly.

        Args:
            state: State to mutate
            year: 1-based year number
            value: Raw percent input

        Returns:
            Updated YearRecord, or None if the year does not exist
        """
        record = self._find_year(state, year)
        if record is None:
            return None

        record.percent = round2(value)
        record.total_budget = amount_from_percent(state.planned_budget, record.percent)
        self._redistribute(record)
        return record

    def set_quarter_amount(
        self,
        state: AllocationState,
        year: int,
        label: str,
        value: Any,
    ) -> AdvisoryMismatch | None:
        """Hand-edit a single quarter amount.

        The year is flagged as manually edited. If the quarters no longer add
        up to a positive year total and no warning is active for the year, an
        advisory is returned and the year's warning flag is set.

        Args:
            state: State to mutate
            year: 1-based year number
            label: Quarter label, e.g. "Y1Q3"
            value: Raw amount input

        Returns:
            AdvisoryMismatch for a newly detected mismatch, otherwise None
        """
        record = self._find_year(state, year)
        if record is None:
            return None

        quarter = record.get_quarter(label)
        if quarter is None:
            logger.warning(f"Ignoring edit to unknown quarter {label} in year {year}")
            return None

        quarter.amount = round2(value)
        record.manually_edited = True

        mismatch = self.check_year(record)
        advisory = None

        if mismatch is not None and not record.warning_active:
            advisory = mismatch
            logger.info(advisory.message)

        if self.warning_policy == "reconcile":
            record.warning_active = mismatch is not None
        elif mismatch is not None:
            record.warning_active = True

        return advisory

    def set_lead_target(self, state: AllocationState, year: int, value: Any) -> YearRecord | None:
        """Set a year's lead generation target. Nothing is derived from it."""
        record = self._find_year(state, year)
        if record is None:
            return None

        record.lead_target = to_decimal(value)
        return record

    def check_year(self, record: YearRecord) -> AdvisoryMismatch | None:
        """Compare a year's quarter sum with its total without mutating it.

        A zero total never produces an advisory.
        """
        if record.total_budget <= 0 or record.is_reconciled:
            return None

        return AdvisoryMismatch(
            year=record.year,
            expected=round2(record.total_budget),
            actual=round2(record.quarter_sum),
        )

    def _redistribute(self, record: YearRecord) -> None:
        per_quarter = round2(record.total_budget / QUARTERS_PER_YEAR)
        for quarter in record.quarters:
            quarter.amount = per_quarter

        record.manually_edited = False
        if self.warning_policy == "reconcile":
            record.warning_active = False

    def _find_year(self, state: AllocationState, year: Any) -> YearRecord | None:
        record = state.get_year(to_count(year))
        if record is None:
            logger.warning(f"Ignoring edit to unknown year {year}")
        return record

    # ------------------------------------------------------------------
    # Derived figures
    # ------------------------------------------------------------------

    def summary(self, state: AllocationState) -> dict:
        """Get planned, used and remaining budget."""
        return {
            "planned_budget": float(state.planned_budget),
            "used_budget": float(state.used_budget),
            "remaining_budget": float(state.remaining_budget),
            "years_with_warnings": [y.year for y in state.years if y.warning_active],
            "manually_edited_years": [y.year for y in state.years if y.manually_edited],
        }
