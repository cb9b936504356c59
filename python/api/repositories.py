"""
Budget Repositories Module

SQL implementations of the allocation session collaborators: default
percentages, project cost and budget persistence.
"""

import json
import logging
from decimal import Decimal

from sqlalchemy import text

from allocation import BudgetDefaults, Receipt, to_decimal

from .database import execute_query, get_db_context

logger = logging.getLogger(__name__)


class SqlDefaultBudgetProvider:
    """Reads the organisation-wide default category percentages."""

    async def get_defaults(self) -> BudgetDefaults:
        query = """
            SELECT
                marketing_percent,
                cp_percent,
                other_percent
            FROM default_budget_settings
            ORDER BY updated_at DESC
            LIMIT 1
        """
        rows = execute_query(query)
        if not rows:
            logger.warning("No default budget settings found")
            return BudgetDefaults()

        row = rows[0]
        return BudgetDefaults(
            marketing_percent=to_decimal(row.get("marketing_percent")),
            cp_percent=to_decimal(row.get("cp_percent")),
            other_percent=to_decimal(row.get("other_percent")),
        )


class SqlProjectCostSource:
    """Reads a project's cost."""

    async def get_project_cost(self, project_id: str) -> Decimal:
        query = """
            SELECT project_cost
            FROM projects
            WHERE id = :project_id
        """
        rows = execute_query(query, {"project_id": project_id})
        if not rows:
            raise LookupError(f"Project {project_id} not found")

        return to_decimal(rows[0].get("project_cost"))


class SqlBudgetPersister:
    """Stores allocation summaries in marketing_budgets / marketing_budget_years."""

    async def save(self, summary: dict) -> Receipt:
        """Insert the budget header and its year rows in one transaction.

        Args:
            summary: AllocationState.to_summary() output

        Returns:
            Receipt with the new budget id
        """
        header = {
            "project_id": summary["project_id"],
            "marketing_percent": summary["marketing_percent"],
            "marketing_amount": summary["marketing_amount"],
            "cp_percent": summary["cp_percent"],
            "cp_amount": summary["cp_amount"],
            "other_percent": summary["other_percent"],
            "other_amount": summary["other_amount"],
            "planned_budget": summary["planned_budget"],
            "year_distributions": json.dumps(summary["year_distributions"]),
        }

        with get_db_context() as db:
            columns = ", ".join(header.keys())
            placeholders = ", ".join(f":{k}" for k in header.keys())
            result = db.execute(
                text(f"INSERT INTO marketing_budgets ({columns}) VALUES ({placeholders}) RETURNING id"),
                header,
            )
            budget_id = result.scalar_one()

            for year in summary["year_distributions"]:
                quarters = [q["amount"] for q in year["quarters"]]
                db.execute(
                    text("""
                        INSERT INTO marketing_budget_years
                            (budget_id, year, percent, total_budget, lead_target,
                             quarter_1, quarter_2, quarter_3, quarter_4)
                        VALUES
                            (:budget_id, :year, :percent, :total_budget, :lead_target,
                             :quarter_1, :quarter_2, :quarter_3, :quarter_4)
                    """),
                    {
                        "budget_id": budget_id,
                        "year": year["year"],
                        "percent": year["percent"],
                        "total_budget": year["total_budget"],
                        "lead_target": year["lead_target"],
                        "quarter_1": quarters[0],
                        "quarter_2": quarters[1],
                        "quarter_3": quarters[2],
                        "quarter_4": quarters[3],
                    },
                )

            db.commit()

        logger.info(f"Saved marketing budget {budget_id} for project {summary['project_id']}")
        return Receipt(budget_id=str(budget_id))

    async def load(self, budget_id: str) -> dict | None:
        """Load a saved budget in summary form, for edit mode.

        Args:
            budget_id: Saved budget id

        Returns:
            Summary dictionary or None if not found
        """
        header_query = """
            SELECT
                project_id,
                marketing_percent,
                marketing_amount,
                cp_percent,
                cp_amount,
                other_percent,
                other_amount
            FROM marketing_budgets
            WHERE id = :budget_id
        """
        headers = execute_query(header_query, {"budget_id": budget_id})
        if not headers:
            return None

        years_query = """
            SELECT
                year,
                percent,
                total_budget,
                lead_target,
                quarter_1,
                quarter_2,
                quarter_3,
                quarter_4
            FROM marketing_budget_years
            WHERE budget_id = :budget_id
            ORDER BY year
        """
        years = execute_query(years_query, {"budget_id": budget_id})

        summary = dict(headers[0])
        summary["year_distributions"] = [
            {
                "year": row["year"],
                "percent": row["percent"],
                "total_budget": row["total_budget"],
                "lead_target": row["lead_target"],
                "quarters": [{"amount": row[f"quarter_{n}"]} for n in range(1, 5)],
            }
            for row in years
        ]
        return summary
