"""
Simplified client interface for the Tracura budget system.

This module provides a clean API for the application layer without dealing
with store wiring or the individual reconciliation services.
"""

import json
import importlib.util
from typing import Any, Callable, Dict, Optional

from tracura_budget.domains import (
    BudgetEvent,
    BudgetSnapshot,
    DeleteResult,
    Expense,
    ProjectBudgetSummary,
    UpdateResult,
)
from tracura_budget.factories.budget_factory import TracuraBudgetFactory
from tracura_budget.interfaces.client.client import TracuraBudget as TracuraBudgetInterface
from tracura_budget.services.aggregator import BudgetAggregator
from tracura_budget.services.approval import ExpenseApprovalService
from tracura_budget.services.summary import BudgetSummaryService


class TracuraBudget(TracuraBudgetInterface):
    """Simplified client interface for budget reconciliation."""

    def __init__(
        self,
        config_path: str = None,
        config: Dict[str, Any] = None,
        aggregator: Optional[BudgetAggregator] = None,
    ):
        """Initialize the budget system from config file, dictionary or a ready aggregator.

        Args:
            config_path: Path to configuration file (JSON or Python)
            config: Configuration dictionary
            aggregator: Pre-built aggregator, used instead of any configuration
        """
        if aggregator is None:
            if not config and not config_path:
                raise ValueError("Either config or config_path must be provided")

            if config_path:
                with open(config_path, "r") as f:
                    if config_path.endswith(".json"):
                        config = json.load(f)
                    else:
                        # Assume it's a Python file
                        spec = importlib.util.spec_from_file_location("config", config_path)
                        config_module = importlib.util.module_from_spec(spec)
                        spec.loader.exec_module(config_module)
                        config = config_module.config

            aggregator = TracuraBudgetFactory.create_from_config(config)

        self.aggregator = aggregator
        self.summary_service = BudgetSummaryService(aggregator.store)
        self.approval_service = ExpenseApprovalService(aggregator.store)

    def on_change(self, callback: Callable[[BudgetEvent], None]) -> None:
        self.aggregator.subscribe(callback)

    async def department_budget(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> BudgetSnapshot:
        return await self.aggregator.load_budget_and_spend(department, project_id, phase_id)

    async def update_department_budget(
        self,
        department: str,
        project_id: str,
        new_total: float,
        phase_id: Optional[str] = None,
    ) -> UpdateResult:
        return await self.aggregator.update_budget(department, project_id, new_total, phase_id)

    async def delete_department(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> DeleteResult:
        """Delete a department and anonymize its expenses.

        Raises:
            ValueError: If the department is the only one left in a phase
        """
        if await self.aggregator.is_only_department_in_phase(department, project_id, phase_id):
            raise ValueError(
                f"Cannot delete '{department}': it is the only department in a phase")
        return await self.aggregator.delete_department(department, project_id, phase_id)

    async def add_department(
        self, project_id: str, phase_id: str, department: str, amount: float
    ) -> str:
        return await self.aggregator.add_department(project_id, phase_id, department, amount)

    async def project_summary(self, project_id: str) -> ProjectBudgetSummary:
        return await self.summary_service.summarize(project_id)

    async def approve_expense(
        self, expense_id: str, approver: str, remark: Optional[str] = None
    ) -> Expense:
        return await self.approval_service.approve_expense(expense_id, approver, remark)

    async def reject_expense(self, expense_id: str, rejecter: str, remark: str) -> Expense:
        return await self.approval_service.reject_expense(expense_id, rejecter, remark)
