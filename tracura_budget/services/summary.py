"""
Project budget summary service.

Rolls phase budgets and approved expenses up into per-phase and
per-department figures for dashboards.
"""
import logging
from collections import defaultdict
from typing import Dict, List

from tracura_budget.domains import (
    DepartmentTotals,
    Expense,
    ExpenseStatus,
    PhaseBudgetSummary,
    ProjectBudgetSummary,
)
from tracura_budget.interfaces.repositories.budget_store import BudgetStore
from tracura_budget.services.aggregator import department_amounts
from tracura_budget.services.key_resolver import composite_key

logger = logging.getLogger(__name__)


class BudgetSummaryService:
    """Service for project-wide budget rollups."""

    def __init__(self, store: BudgetStore):
        self.store = store

    @staticmethod
    def _spend_key(phase_id: str, expense: Expense) -> str:
        # Expenses carry either the bare name or the composite key
        if expense.department.startswith(composite_key(phase_id, "")):
            return expense.department
        return composite_key(phase_id, expense.department)

    async def summarize(self, project_id: str) -> ProjectBudgetSummary:
        """Summarize budgets and approved spend of a project.

        Args:
            project_id: Project ID

        Returns:
            ProjectBudgetSummary with phases in phase order
        """
        phases = await self.store.get_phases(project_id)
        approved = await self.store.query_expenses(project_id, status=ExpenseStatus.APPROVED)

        expenses_by_phase: Dict[str, List[Expense]] = defaultdict(list)
        for expense in approved:
            if expense.phase_id:
                expenses_by_phase[expense.phase_id].append(expense)

        summary = ProjectBudgetSummary(project_id=project_id)
        for phase in phases:
            phase_summary = PhaseBudgetSummary(phase_id=phase.id, phase_name=phase.phase_name)
            for expense in expenses_by_phase.get(phase.id, []):
                if expense.is_anonymous:
                    phase_summary.anonymous_spent += expense.amount
                    continue
                phase_summary.spent += expense.amount
                key = self._spend_key(phase.id, expense)
                phase_summary.department_spent[key] = (
                    phase_summary.department_spent.get(key, 0.0) + expense.amount)

            amounts = await department_amounts(self.store, project_id, phase)
            phase_summary.total_budget = sum(amounts.values())
            for name, amount in amounts.items():
                totals = summary.departments.setdefault(name, DepartmentTotals())
                totals.total += amount
                totals.spent += phase_summary.department_spent.get(
                    composite_key(phase.id, name), 0.0)

            summary.phases.append(phase_summary)

        logger.info(
            f"Summarized project {project_id}: budget {summary.total_budget}, "
            f"spent {summary.total_spent}")
        return summary
