"""
Factory for creating and wiring components of the Tracura budget system.

This module handles the creation and dependency injection for the store and
services used by the client.
"""

import logging
from typing import Dict, Any

# Service imports
from tracura_budget.services.aggregator import BudgetAggregator
from tracura_budget.services.allocator import BudgetAllocator
from tracura_budget.services.key_resolver import DepartmentKeyResolver
from tracura_budget.services.reclassifier import ExpenseReclassifier

# Repository imports
from tracura_budget.repositories.budget_store import MongoBudgetStore

# Adapter imports
from tracura_budget.adapters.mongodb_adapter import MongoDBAdapter

from tracura_budget.domains import ANONYMOUS_DEPARTMENT

# Setup logger for this module
logger = logging.getLogger(__name__)


class TracuraBudgetFactory:
    """Factory for creating and wiring components of the Tracura budget system."""

    @staticmethod
    def create_store(config: Dict[str, Any]) -> MongoBudgetStore:
        """Create the MongoDB-backed budget store.

        Args:
            config: Configuration dictionary

        Returns:
            Configured MongoBudgetStore
        """
        if "mongo" not in config:
            raise ValueError("MongoDB configuration is required.")
        mongo_config = config["mongo"]
        if "connection_string" not in mongo_config:
            raise ValueError("MongoDB connection string is required.")
        if "database" not in mongo_config:
            raise ValueError("MongoDB database name is required.")

        db_adapter = MongoDBAdapter(
            connection_string=mongo_config["connection_string"],
            database_name=mongo_config["database"],
            use_transactions=mongo_config.get("use_transactions", True),
        )
        if not db_adapter.use_transactions:
            logger.warning("MongoDB transactions disabled; expense batches are not all-or-nothing")

        return MongoBudgetStore(db_adapter, collections=config.get("collections"))

    @staticmethod
    def create_from_config(config: Dict[str, Any]) -> BudgetAggregator:
        """Create the budget system from configuration.

        Args:
            config: Configuration dictionary

        Returns:
            Configured BudgetAggregator instance
        """
        store = TracuraBudgetFactory.create_store(config)

        anonymous_department = config.get("anonymous_department", ANONYMOUS_DEPARTMENT)
        if anonymous_department != ANONYMOUS_DEPARTMENT:
            logger.info(f"Using '{anonymous_department}' for anonymous expenses")

        return BudgetAggregator(
            store=store,
            resolver=DepartmentKeyResolver(),
            allocator=BudgetAllocator(),
            reclassifier=ExpenseReclassifier(store),
            anonymous_department=anonymous_department,
        )
