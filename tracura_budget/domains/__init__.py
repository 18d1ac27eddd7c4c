"""
Domain models for the Tracura budget system.

This package contains the business objects persisted in the document store
and the value types returned by the reconciliation services.
"""

from tracura_budget.domains.budget import *
from tracura_budget.domains.exceptions import *
