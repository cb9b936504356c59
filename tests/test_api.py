"""
Allocation API Tests

Tests the FastAPI routes end to end with in-memory collaborators.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from allocation import BudgetDefaults, Receipt
from api.main import app
from api.routes import allocation as allocation_routes
from api.routes.allocation import Collaborators, get_collaborators, get_session_store


class FakeDefaults:
    async def get_defaults(self) -> BudgetDefaults:
        return BudgetDefaults(
            marketing_percent=Decimal("10"),
            cp_percent=Decimal("10"),
            other_percent=Decimal("5"),
        )


class FakeCosts:
    async def get_project_cost(self, project_id: str) -> Decimal:
        return Decimal("10000")


class FakePersister:
    def __init__(self, saved: dict | None = None, error: str | None = None):
        self.saved = saved or {}
        self.error = error
        self.summaries: list[dict] = []

    async def save(self, summary: dict) -> Receipt:
        if self.error:
            raise RuntimeError(self.error)
        self.summaries.append(summary)
        return Receipt(budget_id=f"bud-{len(self.summaries)}")

    async def load(self, budget_id: str) -> dict | None:
        return self.saved.get(budget_id)


@pytest.fixture
def persister(sample_summary) -> FakePersister:
    return FakePersister(saved={"bud-7": sample_summary})


@pytest.fixture
def client(persister):
    """Create a test client with fake collaborators and a fresh session store."""
    store = {}
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_collaborators] = lambda: Collaborators(
        defaults_provider=FakeDefaults(),
        cost_source=FakeCosts(),
        persister=persister,
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def reconciled(client):
    """Open a session and split the 850 planned budget into 400 + 450."""
    client.post("/api/allocations/proj-001/session")
    client.put("/api/allocations/proj-001/years", json={"value": 2})
    client.put("/api/allocations/proj-001/years/1/total", json={"value": 400})
    client.put("/api/allocations/proj-001/years/2/total", json={"value": 450})
    return client


class TestAppEndpoints:
    """Tests for the informational endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        assert client.get("/").json()["name"] == "Marketing Budget Allocation API"

    def test_shutdown_drops_open_sessions(self):
        """Test sessions left open are discarded when the app stops."""
        allocation_routes._sessions["abandoned"] = object()

        with TestClient(app):
            assert "abandoned" in allocation_routes._sessions

        assert allocation_routes._sessions == {}


class TestSessionRoutes:
    """Tests for opening, reading and closing sessions."""

    def test_start_session(self, client):
        """Test a new session loads defaults and project cost."""
        response = client.post("/api/allocations/proj-001/session")

        assert response.status_code == 200
        data = response.json()
        assert data["is_open"] is True
        assert data["state"]["marketing"] == {"percent": 10.0, "amount": 1000.0}
        assert data["state"]["planned_budget"] == 850.0
        assert data["state"]["number_of_years"] == 1

    def test_start_session_from_saved_budget(self, client):
        """Test edit mode restores a saved budget."""
        response = client.post("/api/allocations/proj-001/session", params={"budget_id": "bud-7"})

        assert response.status_code == 200
        years = response.json()["state"]["years"]
        assert [y["total_budget"] for y in years] == [400.0, 450.0]
        assert all(y["manually_edited"] for y in years)

    def test_unknown_saved_budget(self, client):
        response = client.post("/api/allocations/proj-001/session", params={"budget_id": "nope"})

        assert response.status_code == 404

    def test_get_allocation_summary(self, reconciled):
        """Test the derived budget summary is returned."""
        data = reconciled.get("/api/allocations/proj-001").json()

        assert data["summary"]["planned_budget"] == 850.0
        assert data["summary"]["used_budget"] == 850.0
        assert data["summary"]["remaining_budget"] == 0.0

    def test_reopening_replaces_session(self, reconciled):
        """Test a second session for the same project starts fresh."""
        reconciled.post("/api/allocations/proj-001/session")

        state = reconciled.get("/api/allocations/proj-001").json()["state"]
        assert state["number_of_years"] == 1

    def test_missing_session(self, client):
        assert client.get("/api/allocations/ghost").status_code == 404
        assert client.put("/api/allocations/ghost/years", json={"value": 2}).status_code == 404

    def test_close_session(self, reconciled):
        response = reconciled.delete("/api/allocations/proj-001/session")

        assert response.status_code == 200
        assert response.json()["closed"] is True
        assert reconciled.get("/api/allocations/proj-001").status_code == 404


class TestEditRoutes:
    """Tests for field edit routes."""

    def test_category_edit(self, client):
        """Test an amount edit recomputes the percent."""
        client.post("/api/allocations/proj-001/session")

        response = client.put("/api/allocations/proj-001/categories/cp/amount", json={"value": "150"})

        assert response.status_code == 200
        cp = response.json()["state"]["cp"]
        assert cp == {"percent": 15.0, "amount": 150.0}

    def test_unknown_category(self, client):
        client.post("/api/allocations/proj-001/session")

        response = client.put("/api/allocations/proj-001/categories/travel/amount", json={"value": 1})

        assert response.status_code == 404

    def test_malformed_value_is_zero(self, client):
        """Test non-numeric input degrades to zero rather than erroring."""
        client.post("/api/allocations/proj-001/session")

        response = client.put("/api/allocations/proj-001/project-cost", json={"value": "lots"})

        assert response.status_code == 200
        state = response.json()["state"]
        assert state["project_cost"] == 0.0
        assert state["marketing"]["amount"] == 0.0

    def test_year_edits(self, reconciled):
        """Test percent and lead target edits on a year."""
        response = reconciled.put("/api/allocations/proj-001/years/2/percent", json={"value": 50})
        year = response.json()["state"]["years"][1]
        assert year["total_budget"] == 425.0
        assert [q["amount"] for q in year["quarters"]] == [106.25] * 4

        response = reconciled.put("/api/allocations/proj-001/years/2/lead-target", json={"value": 90})
        assert response.json()["state"]["years"][1]["lead_target"] == 90.0

    def test_unknown_year_and_quarter(self, reconciled):
        assert reconciled.put("/api/allocations/proj-001/years/5/total", json={"value": 1}).status_code == 404
        response = reconciled.put("/api/allocations/proj-001/years/1/quarters/Y2Q1", json={"value": 1})
        assert response.status_code == 404

    def test_quarter_edit_advisory(self, reconciled):
        """Test a quarter mismatch returns one advisory and one warning."""
        first = reconciled.put("/api/allocations/proj-001/years/1/quarters/Y1Q1", json={"value": 110}).json()

        assert first["advisory"]["actual"] == 410.0
        assert first["advisory"]["expected"] == 400.0
        assert [n["variant"] for n in first["notifications"]] == ["warning"]
        assert first["state"]["years"][0]["warning_active"] is True

        second = reconciled.put("/api/allocations/proj-001/years/1/quarters/Y1Q2", json={"value": 120}).json()

        assert second["advisory"] is None
        assert second["notifications"] == []


class TestCommitRoutes:
    """Tests for validation and commit."""

    def test_validate(self, reconciled):
        response = reconciled.post("/api/allocations/proj-001/validate")

        assert response.status_code == 200
        assert response.json() == {"is_valid": True, "error": None}

    def test_commit_success(self, reconciled, persister):
        """Test a reconciled allocation is saved and the session closed."""
        response = reconciled.post("/api/allocations/proj-001/commit")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["receipt"]["budget_id"] == "bud-1"
        assert data["notifications"][0]["variant"] == "success"
        assert persister.summaries[0]["planned_budget"] == 850.0
        assert reconciled.get("/api/allocations/proj-001").status_code == 404

    def test_commit_validation_failure(self, reconciled, persister):
        """Test a mismatch is rejected with 422 and nothing is saved."""
        reconciled.put("/api/allocations/proj-001/years/2/total", json={"value": 451})

        response = reconciled.post("/api/allocations/proj-001/commit")

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "planned_budget_mismatch"
        assert detail["actual"] == 851.0
        assert persister.summaries == []
        assert reconciled.get("/api/allocations/proj-001").status_code == 200

    def test_commit_persistence_failure(self, reconciled, persister):
        """Test a persister error is returned verbatim with the session kept."""
        persister.error = "Budget already exists for this project"

        response = reconciled.post("/api/allocations/proj-001/commit")

        assert response.status_code == 502
        assert response.json()["detail"] == "Budget already exists for this project"
        state = reconciled.get("/api/allocations/proj-001").json()["state"]
        assert state["number_of_years"] == 2
