from abc import ABC, abstractmethod
from typing import Callable, Optional

from tracura_budget.domains import (
    BudgetEvent,
    BudgetSnapshot,
    DeleteResult,
    Expense,
    ProjectBudgetSummary,
    UpdateResult,
)


class TracuraBudget(ABC):
    """Interface for the Tracura budget client."""

    @abstractmethod
    def on_change(self, callback: Callable[[BudgetEvent], None]) -> None:
        """Register a callback for budget changes."""
        pass

    @abstractmethod
    async def department_budget(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> BudgetSnapshot:
        """Get allocated and spent figures of a department."""
        pass

    @abstractmethod
    async def update_department_budget(
        self,
        department: str,
        project_id: str,
        new_total: float,
        phase_id: Optional[str] = None,
    ) -> UpdateResult:
        """Change a department's budget."""
        pass

    @abstractmethod
    async def delete_department(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> DeleteResult:
        """Delete a department unless it is the last one in a phase."""
        pass

    @abstractmethod
    async def add_department(
        self, project_id: str, phase_id: str, department: str, amount: float
    ) -> str:
        """Add a department to a phase."""
        pass

    @abstractmethod
    async def project_summary(self, project_id: str) -> ProjectBudgetSummary:
        """Summarize a project's budgets and spend."""
        pass

    @abstractmethod
    async def approve_expense(
        self, expense_id: str, approver: str, remark: Optional[str] = None
    ) -> Expense:
        """Approve a pending expense."""
        pass

    @abstractmethod
    async def reject_expense(self, expense_id: str, rejecter: str, remark: str) -> Expense:
        """Reject a pending expense with a remark."""
        pass
