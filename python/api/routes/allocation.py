"""
Allocation API Routes

Provides endpoints that drive a marketing budget allocation session:
category edits, year and quarter distribution, validation and commit.
"""

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from allocation import BudgetSession, Notification

from ..repositories import SqlBudgetPersister, SqlDefaultBudgetProvider, SqlProjectCostSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/allocations", tags=["allocations"])

CATEGORY_GROUPS = {"marketing", "cp", "other"}
CATEGORY_FIELDS = {"percent", "amount"}


class ValueInput(BaseModel):
    """Raw field value; anything non-numeric is treated as zero."""

    value: Any = None


class CollectingNotifier:
    """Buffers notifications until the current request drains them."""

    def __init__(self):
        self.pending: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.pending.append(notification)

    def drain(self) -> list[dict]:
        drained = [n.to_dict() for n in self.pending]
        self.pending.clear()
        return drained


@dataclass
class Collaborators:
    """Collaborators handed to every new session."""

    defaults_provider: Any
    cost_source: Any
    persister: Any


# Open sessions live in process memory and are dropped on shutdown
_sessions: dict[str, BudgetSession] = {}


def get_session_store() -> dict[str, BudgetSession]:
    """Get the in-memory session store (one session per project)."""
    return _sessions


def get_collaborators() -> Collaborators:
    """Get the SQL-backed session collaborators."""
    return Collaborators(
        defaults_provider=SqlDefaultBudgetProvider(),
        cost_source=SqlProjectCostSource(),
        persister=SqlBudgetPersister(),
    )


def _get_session(project_id: str, store: dict[str, BudgetSession]) -> BudgetSession:
    session = store.get(project_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"No open budget session for project {project_id}")
    return session


def _require_year(session: BudgetSession, year: int) -> None:
    if session.state.get_year(year) is None:
        raise HTTPException(status_code=404, detail=f"Year {year} not found")


def _response(session: BudgetSession, **extra: Any) -> dict:
    return {
        "state": session.state.to_dict(),
        "is_open": session.is_open,
        "notifications": session.notifier.drain(),
        **extra,
    }


@router.post("/{project_id}/session")
async def start_session(
    project_id: str,
    budget_id: str | None = Query(None),
    store: dict[str, BudgetSession] = Depends(get_session_store),
    collaborators: Collaborators = Depends(get_collaborators),
) -> dict:
    """Open an editing session for a project.

    Args:
        project_id: Project id
        budget_id: Saved budget to edit instead of starting from defaults
        store: Session store
        collaborators: Session collaborators

    Returns:
        Session state
    """
    session = BudgetSession(
        project_id=project_id,
        defaults_provider=collaborators.defaults_provider,
        cost_source=collaborators.cost_source,
        persister=collaborators.persister,
        notifier=CollectingNotifier(),
    )
    await session.start()

    if budget_id:
        summary = await collaborators.persister.load(budget_id)
        if summary is None:
            raise HTTPException(status_code=404, detail=f"Budget {budget_id} not found")
        session.restore(summary)

    store[project_id] = session
    logger.info(f"Opened budget session for project {project_id}")
    return _response(session)


@router.get("/{project_id}")
async def get_allocation(
    project_id: str,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    """Get the current allocation with planned, used and remaining budget."""
    session = _get_session(project_id, store)
    return _response(session, summary=session.engine.summary(session.state))


@router.put("/{project_id}/project-cost")
async def set_project_cost(
    project_id: str,
    payload: ValueInput,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    session = _get_session(project_id, store)
    session.set_project_cost(payload.value)
    return _response(session)


@router.put("/{project_id}/categories/{group}/{field_name}")
async def edit_category(
    project_id: str,
    group: str,
    field_name: str,
    payload: ValueInput,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    """Edit a marketing, CP or Other percent or amount.

    Args:
        project_id: Project id
        group: 'marketing', 'cp' or 'other'
        field_name: 'percent' or 'amount'
        payload: New value
        store: Session store

    Returns:
        Updated session state
    """
    if group not in CATEGORY_GROUPS or field_name not in CATEGORY_FIELDS:
        raise HTTPException(status_code=404, detail=f"Unknown budget field {group}/{field_name}")

    session = _get_session(project_id, store)
    session.edit_category(group, field_name, payload.value)
    return _response(session)


@router.put("/{project_id}/years")
async def set_year_count(
    project_id: str,
    payload: ValueInput,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    """Regenerate the year table. Existing year data is discarded."""
    session = _get_session(project_id, store)
    session.set_year_count(payload.value)
    return _response(session)


@router.put("/{project_id}/years/{year}/total")
async def set_year_total(
    project_id: str,
    year: int,
    payload: ValueInput,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    session = _get_session(project_id, store)
    _require_year(session, year)
    session.set_year_total(year, payload.value)
    return _response(session)


@router.put("/{project_id}/years/{year}/percent")
async def set_year_percent(
    project_id: str,
    year: int,
    payload: ValueInput,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    session = _get_session(project_id, store)
    _require_year(session, year)
    session.set_year_percent(year, payload.value)
    return _response(session)


@router.put("/{project_id}/years/{year}/lead-target")
async def set_lead_target(
    project_id: str,
    year: int,
    payload: ValueInput,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    session = _get_session(project_id, store)
    _require_year(session, year)
    session.set_lead_target(year, payload.value)
    return _response(session)


@router.put("/{project_id}/years/{year}/quarters/{label}")
async def set_quarter_amount(
    project_id: str,
    year: int,
    label: str,
    payload: ValueInput,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    """Hand-edit one quarter. A new mismatch is returned as an advisory."""
    session = _get_session(project_id, store)
    _require_year(session, year)
    if session.state.get_year(year).get_quarter(label) is None:
        raise HTTPException(status_code=404, detail=f"Quarter {label} not found in year {year}")

    advisory = session.set_quarter_amount(year, label, payload.value)
    return _response(session, advisory=advisory.to_dict() if advisory else None)


@router.post("/{project_id}/validate")
async def validate_allocation(
    project_id: str,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    """Run the commit validation without saving."""
    session = _get_session(project_id, store)
    return session.validate().to_dict()


@router.post("/{project_id}/commit")
async def commit_allocation(
    project_id: str,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    """Validate and save the allocation.

    Args:
        project_id: Project id
        store: Session store

    Returns:
        Commit result with the persister receipt

    Raises:
        HTTPException: 422 when validation fails, 502 when the save fails
    """
    session = _get_session(project_id, store)
    result = await session.commit()

    if not result.success:
        session.notifier.drain()

    if not result.validation.is_valid:
        raise HTTPException(status_code=422, detail=result.validation.error.to_dict())

    if not result.success:
        raise HTTPException(status_code=502, detail=result.error_message)

    store.pop(project_id, None)
    return {
        **result.to_dict(),
        "notifications": session.notifier.drain(),
    }


@router.delete("/{project_id}/session")
async def close_session(
    project_id: str,
    store: dict[str, BudgetSession] = Depends(get_session_store),
) -> dict:
    """Close the editing session without saving."""
    session = _get_session(project_id, store)
    session.close()
    store.pop(project_id, None)
    return {"project_id": project_id, "closed": True}
