from abc import ABC, abstractmethod
from typing import Optional

from tracura_budget.domains import Expense


class ExpenseApprovalService(ABC):
    """Interface for expense approval decisions."""

    @abstractmethod
    async def approve_expense(
        self, expense_id: str, approver: str, remark: Optional[str] = None
    ) -> Expense:
        """Approve a pending expense."""
        pass

    @abstractmethod
    async def reject_expense(self, expense_id: str, rejecter: str, remark: str) -> Expense:
        """Reject a pending expense."""
        pass
