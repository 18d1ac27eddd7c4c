"""
Tracura Budget - department budget reconciliation for phased projects.

This package resolves department budgets stored under legacy and composite
keys, redistributes budgets across phases, and anonymizes the expenses of
deleted departments on top of a MongoDB document store.
"""

# Client interface (main entry point)
from tracura_budget.client.tracura_budget import TracuraBudget

# Factory for wiring the budget system
from tracura_budget.factories.budget_factory import TracuraBudgetFactory

# Reconciliation services
from tracura_budget.services.aggregator import BudgetAggregator
from tracura_budget.services.allocator import BudgetAllocator
from tracura_budget.services.key_resolver import DepartmentKeyResolver
from tracura_budget.services.reclassifier import ExpenseReclassifier
from tracura_budget.services.summary import BudgetSummaryService
from tracura_budget.services.approval import ExpenseApprovalService

# Errors
from tracura_budget.domains.exceptions import (
    BudgetError,
    DepartmentNotFound,
    InvalidStatusTransition,
    NoPhasesFound,
    PartialWriteFailure,
    RemoteStoreError,
)

# Package metadata
__all__ = [
    # Main client interfaces
    "TracuraBudget",
    # Factories
    "TracuraBudgetFactory",
    # Services
    "BudgetAggregator",
    "BudgetAllocator",
    "DepartmentKeyResolver",
    "ExpenseReclassifier",
    "BudgetSummaryService",
    "ExpenseApprovalService",
    # Errors
    "BudgetError",
    "DepartmentNotFound",
    "InvalidStatusTransition",
    "NoPhasesFound",
    "PartialWriteFailure",
    "RemoteStoreError",
]
