"""
Expense approval service.

An expense is submitted as PENDING and is decided exactly once: it moves to
APPROVED or REJECTED and never changes status again. Only approved expenses
count as spend.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from tracura_budget.domains import Expense, ExpenseStatus, InvalidStatusTransition
from tracura_budget.interfaces.repositories.budget_store import BudgetStore
from tracura_budget.interfaces.services.approval import (
    ExpenseApprovalService as ExpenseApprovalServiceInterface,
)

logger = logging.getLogger(__name__)


class ExpenseApprovalService(ExpenseApprovalServiceInterface):
    """Service recording approval decisions on expenses."""

    def __init__(self, store: BudgetStore):
        """Initialize the approval service.

        Args:
            store: Budget store holding the expenses
        """
        self.store = store

    async def _decide(
        self, expense_id: str, status: ExpenseStatus, fields: Dict[str, Any]
    ) -> Expense:
        expense = await self.store.get_expense(expense_id)
        if not expense:
            raise ValueError(f"Expense not found: {expense_id}")
        if expense.status != ExpenseStatus.PENDING:
            raise InvalidStatusTransition(expense_id, expense.status, status.value)

        moved = await self.store.transition_expense_status(
            expense_id, ExpenseStatus.PENDING, status, fields)
        if not moved:
            # Decided by someone else since it was read
            current = await self.store.get_expense(expense_id)
            current_status = current.status if current else "deleted"
            raise InvalidStatusTransition(expense_id, current_status, status.value)

        logger.info(f"Expense {expense_id} {status.value.lower()}")
        return await self.store.get_expense(expense_id)

    async def approve_expense(
        self, expense_id: str, approver: str, remark: Optional[str] = None
    ) -> Expense:
        """Approve a pending expense.

        Args:
            expense_id: Expense ID
            approver: ID of the approving user
            remark: Optional approval remark

        Returns:
            The approved expense

        Raises:
            ValueError: If the expense does not exist
            InvalidStatusTransition: If the expense is no longer pending
        """
        return await self._decide(expense_id, ExpenseStatus.APPROVED, {
            "approvedBy": approver,
            "approvedAt": datetime.now(),
            "remark": remark,
            "rejectedBy": None,
            "rejectedAt": None,
        })

    async def reject_expense(self, expense_id: str, rejecter: str, remark: str) -> Expense:
        """Reject a pending expense.

        Args:
            expense_id: Expense ID
            rejecter: ID of the rejecting user
            remark: Reason for the rejection

        Returns:
            The rejected expense

        Raises:
            ValueError: If the expense does not exist or the remark is blank
            InvalidStatusTransition: If the expense is no longer pending
        """
        if not remark or not remark.strip():
            raise ValueError("A rejection remark is required")
        return await self._decide(expense_id, ExpenseStatus.REJECTED, {
            "rejectedBy": rejecter,
            "rejectedAt": datetime.now(),
            "remark": remark,
            "approvedBy": None,
            "approvedAt": None,
        })
