"""
Budget Session Module

Drives one allocation editing session against its external collaborators:
default percentages, project cost, persistence and user notifications.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

from .coercion import ZERO, round2
from .models import AllocationState, YearRecord
from .reconciliation import AdvisoryMismatch, ReconciliationEngine
from .validation import ValidationEngine, ValidationResult

logger = logging.getLogger(__name__)


@dataclass
class BudgetDefaults:
    """Default category percentages applied at session start."""

    marketing_percent: Decimal = ZERO
    cp_percent: Decimal = ZERO
    other_percent: Decimal = ZERO


@dataclass
class Receipt:
    """Acknowledgement returned by a budget persister."""

    budget_id: str
    saved_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "budget_id": self.budget_id,
            "saved_at": self.saved_at.isoformat(),
        }


@dataclass
class Notification:
    """User-facing message produced by the session."""

    title: str
    message: str
    variant: str  # 'success', 'warning', 'error'

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "message": self.message,
            "variant": self.variant,
        }


@dataclass
class CommitResult:
    """Outcome of a commit attempt."""

    success: bool
    validation: ValidationResult
    receipt: Receipt | None = None
    error_message: str | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "validation": self.validation.to_dict(),
            "receipt": self.receipt.to_dict() if self.receipt else None,
            "error_message": self.error_message,
        }


class DefaultBudgetProvider(Protocol):
    """Source of default category percentages."""

    async def get_defaults(self) -> BudgetDefaults:
        ...


class ProjectCostSource(Protocol):
    """Source of the top-level project cost."""

    async def get_project_cost(self, project_id: str) -> Decimal:
        ...


class BudgetPersister(Protocol):
    """Stores a validated allocation summary. Raises on failure."""

    async def save(self, summary: dict) -> Receipt:
        ...


class Notifier(Protocol):
    """Presentation sink for session notifications."""

    def notify(self, notification: Notification) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes notifications to the log."""

    LEVELS = {
        "success": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }

    def notify(self, notification: Notification) -> None:
        level = self.LEVELS.get(notification.variant, logging.INFO)
        logger.log(level, f"{notification.title}: {notification.message}")


class BudgetSession:
    """One editing session over a project's marketing budget allocation."""

    def __init__(
        self,
        project_id: str,
        defaults_provider: DefaultBudgetProvider,
        cost_source: ProjectCostSource,
        persister: BudgetPersister,
        notifier: Notifier | None = None,
        config_dir: Path | str | None = None,
    ):
        """Initialize the session.

        Args:
            project_id: Project whose cost is being allocated
            defaults_provider: Default percentage provider
            cost_source: Project cost source
            persister: Budget persister
            notifier: Notification sink (defaults to logging)
            config_dir: Path to configuration directory
        """
        self.project_id = project_id
        self.defaults_provider = defaults_provider
        self.cost_source = cost_source
        self.persister = persister
        self.notifier = notifier or LoggingNotifier()

        self.engine = ReconciliationEngine(config_dir)
        self.validator = ValidationEngine()

        years_config = self.engine.config.get("years") or {}
        self.default_year_count = years_config.get("default_count", 1)
        self.reset_year_count = years_config.get("reset_count", 1)

        self.state = AllocationState(project_id=project_id)
        self.is_open = False

    async def start(self) -> AllocationState:
        """Open the session and load defaults and project cost.

        A failing collaborator leaves its values at zero; nothing is retried.

        Returns:
            The session state
        """
        self.is_open = True
        self.engine.set_year_count(self.state, self.default_year_count)

        try:
            defaults = await self.defaults_provider.get_defaults()
            self.state.marketing.percent = round2(defaults.marketing_percent)
            self.state.cp.percent = round2(defaults.cp_percent)
            self.state.other.percent = round2(defaults.other_percent)
        except Exception as e:
            logger.error(f"Error fetching default budget: {e}")

        try:
            cost = await self.cost_source.get_project_cost(self.project_id)
            self.engine.set_project_cost(self.state, cost)
        except Exception as e:
            logger.error(f"Error fetching project cost for {self.project_id}: {e}")
            self.engine.recalculate_amounts(self.state)

        logger.debug(f"Started budget session for project {self.project_id}")
        return self.state

    def restore(self, summary: dict) -> AllocationState:
        """Replace the state with a previously saved allocation (edit mode)."""
        self.state = AllocationState.from_summary(summary, project_cost=self.state.project_cost)
        self.state.project_id = self.project_id
        if self.state.project_cost > 0:
            self.engine.recalculate_amounts(self.state)
        self.is_open = True
        return self.state

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def set_project_cost(self, value: Any) -> AllocationState:
        return self.engine.set_project_cost(self.state, value)

    def edit_category(self, group: str, field_name: str, value: Any) -> AllocationState:
        return self.engine.apply_category_edit(self.state, group, field_name, value)

    def set_year_count(self, value: Any) -> AllocationState:
        return self.engine.set_year_count(self.state, value)

    def set_year_total(self, year: int, value: Any) -> YearRecord | None:
        return self.engine.set_year_total(self.state, year, value)

    def set_year_percent(self, year: int, value: Any) -> YearRecord | None:
        return self.engine.set_year_percent(self.state, year, value)

    def set_lead_target(self, year: int, value: Any) -> YearRecord | None:
        return self.engine.set_lead_target(self.state, year, value)

    def set_quarter_amount(self, year: int, label: str, value: Any) -> AdvisoryMismatch | None:
        """Edit a quarter and surface any new mismatch as a warning."""
        advisory = self.engine.set_quarter_amount(self.state, year, label, value)
        if advisory is not None:
            self.notifier.notify(Notification(
                title="Validation Warning",
                message=advisory.message,
                variant="warning",
            ))
        return advisory

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def validate(self) -> ValidationResult:
        return self.validator.validate_for_commit(self.state)

    async def commit(self) -> CommitResult:
        """Validate and persist the allocation.

        Validation failures block the save. Persister failures are reported
        verbatim; in both cases the state is left untouched for correction.

        Returns:
            CommitResult
        """
        validation = self.validate()
        if not validation.is_valid:
            self.notifier.notify(Notification(
                title="Validation Error",
                message=validation.error.message,
                variant="error",
            ))
            return CommitResult(
                success=False,
                validation=validation,
                error_message=validation.error.message,
            )

        try:
            receipt = await self.persister.save(self.state.to_summary())
        except Exception as e:
            logger.error(f"Error creating budget record for {self.project_id}: {e}")
            self.notifier.notify(Notification(
                title="Error creating budget record",
                message=str(e),
                variant="error",
            ))
            return CommitResult(
                success=False,
                validation=validation,
                error_message=str(e),
            )

        self.notifier.notify(Notification(
            title="Success",
            message="Budget record created successfully",
            variant="success",
        ))
        self.close()

        return CommitResult(success=True, validation=validation, receipt=receipt)

    def close(self) -> None:
        """Close the editing surface and reset the year table."""
        self.is_open = False
        self.engine.set_year_count(self.state, self.reset_year_count)
