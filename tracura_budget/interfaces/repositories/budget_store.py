"""
Budget store interface.

The reconciliation services read and write projects, phases, department
records and expenses only through this contract, so any hierarchical document
store can back them.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from tracura_budget.domains import Department, Expense, ExpenseStatus, Phase


class BudgetStore(ABC):
    """Interface for budget data access."""

    @abstractmethod
    async def update_project_field(self, project_id: str, key: str, value: Any) -> None:
        """Set a single top-level field of a project."""
        pass

    @abstractmethod
    async def get_phases(self, project_id: str) -> List[Phase]:
        """Get all phases of a project ordered by phase number."""
        pass

    @abstractmethod
    async def get_phase(self, project_id: str, phase_id: str) -> Optional[Phase]:
        """Get a single phase."""
        pass

    @abstractmethod
    async def update_phase_field(
        self,
        project_id: str,
        phase_id: str,
        key: str,
        value: Any,
        unset_keys: Optional[List[str]] = None,
    ) -> None:
        """Set a (possibly nested, dot separated) phase field without overwriting siblings.

        Fields in unset_keys are removed in the same write, so a key can be
        renamed atomically.
        """
        pass

    @abstractmethod
    async def delete_phase_field(self, project_id: str, phase_id: str, *keys: str) -> None:
        """Remove one or more (possibly nested, dot separated) phase fields in one write."""
        pass

    @abstractmethod
    async def get_department_record(
        self, project_id: str, phase_id: str, name: str
    ) -> Optional[Department]:
        """Get the department record with the given display name in a phase."""
        pass

    @abstractmethod
    async def list_department_records(self, project_id: str, phase_id: str) -> List[Department]:
        """Get all department records of a phase."""
        pass

    @abstractmethod
    async def save_department_record(self, department: Department) -> str:
        """Create or replace a department record.

        Returns:
            ID of the stored record
        """
        pass

    @abstractmethod
    async def delete_department_record(self, project_id: str, phase_id: str, name: str) -> int:
        """Delete department records by display name in a phase.

        Returns:
            Number of records deleted
        """
        pass

    @abstractmethod
    async def query_expenses(
        self,
        project_id: str,
        phase_id: Optional[str] = None,
        department: Optional[str] = None,
        status: Optional[ExpenseStatus] = None,
        is_anonymous: Optional[bool] = None,
    ) -> List[Expense]:
        """Query expenses, newest first. Filters left as None are not applied."""
        pass

    @abstractmethod
    async def batch_update_expenses(self, expense_ids: List[str], fields: Dict[str, Any]) -> int:
        """Set the same fields on every listed expense as one all-or-nothing batch.

        Returns:
            Number of expenses updated
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: str) -> Optional[Expense]:
        """Get an expense by ID."""
        pass

    @abstractmethod
    async def transition_expense_status(
        self,
        expense_id: str,
        from_status: ExpenseStatus,
        to_status: ExpenseStatus,
        fields: Dict[str, Any],
    ) -> bool:
        """Move an expense to a new status only if it still has from_status.

        Returns:
            True when the expense was in from_status and got updated
        """
        pass
