"""
Budget allocation across phases.

Spreads a department's new aggregate budget over the phases holding it,
keeping each phase's share of the previous total.
"""
from typing import List, Sequence, Tuple

from tracura_budget.domains import Department, NoPhasesFound


class BudgetAllocator:
    """Proportional redistribution of department budgets."""

    def redistribute(
        self, new_total: float, current_allocations: Sequence[Tuple[str, float]]
    ) -> List[Tuple[str, float]]:
        """Redistribute a new total across phases.

        Args:
            new_total: New aggregate budget for the department
            current_allocations: (phase_id, current_amount) pairs

        Returns:
            (phase_id, new_amount) pairs in input order

        Raises:
            NoPhasesFound: If there is nothing to redistribute across
            ValueError: If new_total is negative
        """
        if not current_allocations:
            raise NoPhasesFound()
        if new_total < 0:
            raise ValueError("New budget total cannot be negative")

        current_sum = sum(amount for _, amount in current_allocations)
        if current_sum > 0:
            return [
                (phase_id, new_total * (amount / current_sum))
                for phase_id, amount in current_allocations
            ]

        # No existing budget anywhere: equal split
        share = new_total / len(current_allocations)
        return [(phase_id, share) for phase_id, _ in current_allocations]

    def rescale_line_items(self, department: Department, new_amount: float) -> Department:
        """Scale a department's unit prices so its total matches new_amount.

        Quantities are kept; the relative weight of line items is preserved.
        Departments with a zero total are returned unchanged.
        """
        current_total = department.total_budget
        scale_factor = new_amount / current_total if current_total > 0 else 1.0
        line_items = [
            item.model_copy(update={"unit_price": item.unit_price * scale_factor})
            for item in department.line_items
        ]
        return department.model_copy(update={"line_items": line_items})
