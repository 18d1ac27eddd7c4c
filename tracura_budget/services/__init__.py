"""
Service implementations for the Tracura budget system.

These services implement the reconciliation logic behind the interfaces
defined in tracura_budget.interfaces.services.
"""

from tracura_budget.services.key_resolver import *
from tracura_budget.services.allocator import *
from tracura_budget.services.reclassifier import *
from tracura_budget.services.aggregator import *
from tracura_budget.services.summary import *
from tracura_budget.services.approval import *
