from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from tracura_budget.domains import (
    BudgetEvent,
    BudgetSnapshot,
    DeleteResult,
    UpdateResult,
)


class BudgetAggregator(ABC):
    """Interface for department budget reconciliation."""

    @abstractmethod
    def subscribe(self, callback: Callable[[BudgetEvent], None]) -> None:
        """Register an observer for budget change events."""
        pass

    @abstractmethod
    async def load_budget_and_spend(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> BudgetSnapshot:
        """Load allocated and spent figures of a department in one phase."""
        pass

    @abstractmethod
    async def update_budget(
        self,
        department: str,
        project_id: str,
        new_total: float,
        phase_id: Optional[str] = None,
    ) -> UpdateResult:
        """Redistribute a new aggregate budget across the department's phases."""
        pass

    @abstractmethod
    async def delete_department(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> DeleteResult:
        """Remove a department and anonymize its expenses."""
        pass

    @abstractmethod
    async def is_only_department_in_phase(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> bool:
        """Check whether deleting the department would empty a phase."""
        pass

    @abstractmethod
    async def phases_with_only_department(
        self, department: str, project_id: str
    ) -> List[Tuple[str, str]]:
        """List (phase_id, phase_name) of phases holding only this department."""
        pass

    @abstractmethod
    async def add_department(
        self, project_id: str, phase_id: str, department: str, amount: float
    ) -> str:
        """Add a department budget to a phase and return the key written."""
        pass

    @abstractmethod
    async def recompute_project_budget(self, project_id: str) -> float:
        """Recompute and persist the project aggregate budget."""
        pass
