"""
Abstract interfaces for the Tracura budget system.

These interfaces define the contracts that concrete implementations
must adhere to, following the Dependency Inversion Principle.

This package contains:
- Repository interfaces for data access
- Provider interfaces for external storage adapters
- Service interfaces for the reconciliation logic
"""
