"""
Pytest configuration and fixtures for budget allocation tests.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "python"))

from allocation import (  # noqa: E402
    AllocationState,
    BudgetCategory,
    ReconciliationEngine,
)


def write_config(config_dir: Path, warning_policy: str = "reconcile") -> Path:
    """Write an allocation config file into config_dir."""
    config_dir.mkdir(exist_ok=True)
    (config_dir / "allocation_config.yaml").write_text(f"""
years:
  default_count: 1
  reset_count: 1
advisory:
  warning_policy: {warning_policy}
""")
    return config_dir


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Return a temp config directory with the default policy."""
    return write_config(tmp_path / "config")


@pytest.fixture
def sticky_config_dir(tmp_path: Path) -> Path:
    """Return a temp config directory with the sticky warning policy."""
    return write_config(tmp_path / "sticky_config", warning_policy="sticky")


@pytest.fixture
def engine(config_dir: Path) -> ReconciliationEngine:
    """Create an engine with the default warning policy."""
    return ReconciliationEngine(config_dir)


@pytest.fixture
def planned_state() -> AllocationState:
    """State with marketing 1000, CP 100 and Other 50 (planned budget 850)."""
    return AllocationState(
        project_cost=Decimal("10000.00"),
        marketing=BudgetCategory(percent=Decimal("10.00"), amount=Decimal("1000.00")),
        cp=BudgetCategory(percent=Decimal("10.00"), amount=Decimal("100.00")),
        other=BudgetCategory(percent=Decimal("5.00"), amount=Decimal("50.00")),
        project_id="proj-001",
    )


@pytest.fixture
def sample_summary() -> dict:
    """Return a saved allocation summary, as a persister would store it."""
    return {
        "project_id": "proj-001",
        "marketing_percent": 10.0,
        "marketing_amount": 1000.0,
        "cp_percent": 10.0,
        "cp_amount": 100.0,
        "other_percent": 5.0,
        "other_amount": 50.0,
        "planned_budget": 850.0,
        "year_distributions": [
            {
                "year": 1,
                "percent": 47.06,
                "total_budget": 400.0,
                "lead_target": 120,
                "quarters": [
                    {"label": "Y1Q1", "amount": 50.0},
                    {"label": "Y1Q2", "amount": 150.0},
                    {"label": "Y1Q3", "amount": 100.0},
                    {"label": "Y1Q4", "amount": 100.0},
                ],
            },
            {
                "year": 2,
                "percent": 52.94,
                "total_budget": 450.0,
                "lead_target": 140,
                "quarters": [
                    {"label": "Y2Q1", "amount": 112.5},
                    {"label": "Y2Q2", "amount": 112.5},
                    {"label": "Y2Q3", "amount": 112.5},
                    {"label": "Y2Q4", "amount": 112.5},
                ],
            },
        ],
    }
