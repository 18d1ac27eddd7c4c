"""
Department key resolution.

A phase stores department budgets in a flat map whose keys come in two
formats: the legacy key is the bare display name (``"Costumes"``) and the
composite key prefixes it with the phase ID (``"phase1_Costumes"``).
"""
import logging
from typing import Dict, List

from tracura_budget.domains import KeyKind, ResolvedKey

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "_"


def composite_key(phase_id: str, department_name: str) -> str:
    """Build the composite storage key of a department in a phase."""
    return f"{phase_id}{KEY_SEPARATOR}{department_name}"


def display_name(key: str) -> str:
    """Return the display name a storage key stands for.

    Everything after the first separator; keys without one are legacy keys
    and are their own display name.
    """
    _, separator, name = key.partition(KEY_SEPARATOR)
    return name if separator else key


def matching_keys(department_name: str, phase_id: str, departments: Dict[str, float]) -> List[str]:
    """Every key in a phase map that represents the department in any format."""
    compound = composite_key(phase_id, department_name)
    return [
        key for key in departments
        if key == compound or key == department_name or display_name(key) == department_name
    ]


class DepartmentKeyResolver:
    """Finds the storage key representing a department inside one phase."""

    def resolve(
        self, department_name: str, phase_id: str, departments: Dict[str, float]
    ) -> ResolvedKey:
        """Resolve a department display name against a phase's department map.

        Rules, first match wins:

        1. the composite key ``{phase_id}_{department_name}``
        2. the legacy key ``department_name``
        3. a key whose text after the first underscore equals the name

        A suffix match that is not unique is ambiguous and resolves to
        not found.

        Args:
            department_name: Department display name
            phase_id: ID of the phase owning the map
            departments: The phase's department key to amount map

        Returns:
            ResolvedKey tagged with the rule that matched
        """
        compound = composite_key(phase_id, department_name)
        if compound in departments:
            return ResolvedKey(kind=KeyKind.COMPOSITE, key=compound)

        if department_name in departments:
            return ResolvedKey(kind=KeyKind.LEGACY, key=department_name)

        candidates = [
            key for key in departments
            if KEY_SEPARATOR in key and display_name(key) == department_name
        ]
        if len(candidates) == 1:
            return ResolvedKey(kind=KeyKind.SUFFIX, key=candidates[0])
        if len(candidates) > 1:
            logger.warning(
                f"Ambiguous keys {candidates} for department '{department_name}' "
                f"in phase {phase_id}"
            )

        return ResolvedKey.not_found()


def validate_department_name(name: str) -> str:
    """Reject names that cannot become a field of the department map.

    Keys are written through dotted update paths, so a '.' would nest the
    amount one level deeper and a leading '$' reads as an operator.

    Raises:
        ValueError: If the name is empty, contains '.' or starts with '$'
    """
    if not name:
        raise ValueError("Department name cannot be empty")
    if "." in name or name.startswith("$"):
        raise ValueError(
            f"Invalid department name '{name}': '.' and a leading '$' are not allowed")
    return name
