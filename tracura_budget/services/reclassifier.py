"""
Expense reclassification for deleted departments.

Expenses are never removed with their department; they are flagged anonymous
and keep the original department name for auditing.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from tracura_budget.domains import Expense
from tracura_budget.interfaces.repositories.budget_store import BudgetStore
from tracura_budget.services.key_resolver import composite_key

logger = logging.getLogger(__name__)


class ExpenseReclassifier:
    """Marks the expenses of a deleted department as anonymous."""

    def __init__(self, store: BudgetStore):
        self.store = store

    @staticmethod
    def _expense_keys(department: str, phase_id: str, resolved_key: Optional[str]) -> Set[str]:
        keys = {department, composite_key(phase_id, department)}
        if resolved_key:
            keys.add(resolved_key)
        return keys

    async def find_department_expenses(
        self,
        project_id: str,
        department: str,
        phase_id: str,
        resolved_key: Optional[str] = None,
    ) -> List[Expense]:
        """Expenses of one phase attributed to the department, in any key format."""
        keys = self._expense_keys(department, phase_id, resolved_key)
        expenses = await self.store.query_expenses(project_id, phase_id=phase_id)
        return [
            expense for expense in expenses
            if expense.phase_id == phase_id and expense.department in keys
        ]

    async def reclassify(
        self,
        project_id: str,
        department: str,
        phase_ids: Iterable[str],
        department_keys: Optional[Dict[str, str]] = None,
    ) -> int:
        """Flag the department's expenses in the given phases as anonymous.

        Each phase is written as one all-or-nothing batch, whatever the
        expenses' status.

        Args:
            project_id: Project ID
            department: Department display name
            phase_ids: Phases the department was removed from
            department_keys: Optional phase_id to storage key the department
                was found under before deletion

        Returns:
            Number of expenses updated
        """
        department_keys = department_keys or {}
        updated = 0
        for phase_id in dict.fromkeys(phase_ids):
            expenses = await self.find_department_expenses(
                project_id, department, phase_id, department_keys.get(phase_id))
            if not expenses:
                continue

            now = datetime.now()
            fields = {
                "isAnonymous": True,
                "originalDepartment": department,
                "departmentDeletedAt": now,
                "updatedAt": now,
            }
            updated += await self.store.batch_update_expenses(
                [expense.id for expense in expenses], fields)
            logger.info(
                f"Marked {len(expenses)} expenses of '{department}' anonymous in phase {phase_id}")
        return updated
