"""
Exceptions raised by the budget reconciliation services.
"""
from typing import List, Optional


class BudgetError(Exception):
    """Base class for budget reconciliation errors."""


class DepartmentNotFound(BudgetError):
    """No phase holds a resolvable key for the department."""

    def __init__(self, department: str, project_id: str):
        self.department = department
        self.project_id = project_id
        super().__init__(
            f"Department '{department}' not found in project {project_id}")


class NoPhasesFound(BudgetError):
    """A redistribution was requested with no target phases."""

    def __init__(self, department: Optional[str] = None):
        self.department = department
        if department:
            message = f"No phases hold department '{department}'"
        else:
            message = "No phases to redistribute across"
        super().__init__(message)


class RemoteStoreError(BudgetError):
    """The document store failed; carries the driver's message."""


class PartialWriteFailure(BudgetError):
    """Some phases were written before a later write failed."""

    def __init__(self, completed_phase_ids: List[str], cause: Exception):
        self.completed_phase_ids = list(completed_phase_ids)
        self.cause = cause
        super().__init__(
            f"Write failed after updating phases {self.completed_phase_ids}: {cause}")


class InvalidStatusTransition(BudgetError):
    """An expense left PENDING cannot change status again."""

    def __init__(self, expense_id: str, current: str, requested: str):
        self.expense_id = expense_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Expense {expense_id} is {current}; it cannot become {requested}")
