"""
Department budget aggregation service.

This service reads, updates and deletes department budgets across the phases
of a project. It locates departments stored under either key format, keeps
figures scoped to a single phase, and recomputes the project aggregate budget
after every change.
"""
import logging
from typing import Callable, Dict, List, Optional, Tuple

from tracura_budget.domains import (
    ANONYMOUS_DEPARTMENT,
    BudgetEvent,
    BudgetEventType,
    BudgetSnapshot,
    DeleteResult,
    DepartmentNotFound,
    Department,
    Expense,
    NoPhasesFound,
    PartialWriteFailure,
    Phase,
    ResolvedKey,
    UpdateResult,
)
from tracura_budget.interfaces.repositories.budget_store import BudgetStore
from tracura_budget.interfaces.services.aggregator import (
    BudgetAggregator as BudgetAggregatorInterface,
)
from tracura_budget.services.allocator import BudgetAllocator
from tracura_budget.services.key_resolver import (
    DepartmentKeyResolver,
    composite_key,
    display_name,
    matching_keys,
    validate_department_name,
)
from tracura_budget.services.reclassifier import ExpenseReclassifier

logger = logging.getLogger(__name__)


def _departments_field(key: str) -> str:
    return f"departments.{key}"


async def department_amounts(store: BudgetStore, project_id: str, phase: Phase) -> Dict[str, float]:
    """Budget of each department in a phase, keyed by display name.

    A department record replaces the flat map entries it shadows; records
    without a flat entry are added.
    """
    flat = dict(phase.departments)
    amounts: Dict[str, float] = {}
    for record in await store.list_department_records(project_id, phase.id):
        for key in matching_keys(record.name, phase.id, flat):
            del flat[key]
        amounts[record.name] = amounts.get(record.name, 0.0) + record.total_budget
    for key, amount in flat.items():
        name = display_name(key)
        amounts[name] = amounts.get(name, 0.0) + amount
    return amounts


class BudgetAggregator(BudgetAggregatorInterface):
    """Service reconciling department budgets across project phases."""

    def __init__(
        self,
        store: BudgetStore,
        resolver: Optional[DepartmentKeyResolver] = None,
        allocator: Optional[BudgetAllocator] = None,
        reclassifier: Optional[ExpenseReclassifier] = None,
        anonymous_department: str = ANONYMOUS_DEPARTMENT,
    ):
        """Initialize the aggregator.

        Args:
            store: Budget store holding projects, phases and expenses
            resolver: Optional department key resolver
            allocator: Optional budget allocator
            reclassifier: Optional expense reclassifier
            anonymous_department: Display name of the "no department" sentinel
        """
        self.store = store
        self.resolver = resolver or DepartmentKeyResolver()
        self.allocator = allocator or BudgetAllocator()
        self.reclassifier = reclassifier or ExpenseReclassifier(store)
        self.anonymous_department = anonymous_department
        self._observers: List[Callable[[BudgetEvent], None]] = []

    def subscribe(self, callback: Callable[[BudgetEvent], None]) -> None:
        self._observers.append(callback)

    def _notify(self, event: BudgetEvent) -> None:
        for callback in self._observers:
            try:
                callback(event)
            except Exception as e:
                logger.exception(f"Budget observer failed on {event.type}: {e}")

    async def _scoped_phases(self, project_id: str, phase_id: Optional[str]) -> List[Phase]:
        """All phases in phase order, or just the requested one."""
        if phase_id is None:
            return await self.store.get_phases(project_id)
        phase = await self.store.get_phase(project_id, phase_id)
        return [phase] if phase else []

    async def _holds_only(self, project_id: str, phase: Phase, department: str) -> bool:
        keys = matching_keys(department, phase.id, phase.departments)
        other_keys = [key for key in phase.departments if key not in keys]
        records = await self.store.list_department_records(project_id, phase.id)
        holds = bool(keys) or any(record.name == department for record in records)
        others = bool(other_keys) or any(record.name != department for record in records)
        return holds and not others

    def _belongs_to(self, expense: Expense, department: str, key: Optional[str]) -> bool:
        if expense.is_anonymous:
            return False
        if key and expense.department == key:
            return True
        return display_name(expense.department) == department

    async def _load_anonymous(self, project_id: str, phase_id: Optional[str]) -> BudgetSnapshot:
        expenses = await self.store.query_expenses(
            project_id, phase_id=phase_id, is_anonymous=True)
        if phase_id is not None:
            expenses = [expense for expense in expenses if expense.phase_id == phase_id]
        spent = sum(expense.amount for expense in expenses if expense.is_approved)
        return BudgetSnapshot(
            department=self.anonymous_department,
            allocated=0.0,
            spent=spent,
            phase_ids=[phase_id] if phase_id else [],
            expenses=expenses,
        )

    async def _find_department(
        self, department: str, project_id: str, phase_id: Optional[str]
    ) -> Optional[Tuple[Phase, Optional[Department], ResolvedKey]]:
        """First phase in scope holding the department as a record or map key."""
        for phase in await self._scoped_phases(project_id, phase_id):
            record = await self.store.get_department_record(project_id, phase.id, department)
            resolved = self.resolver.resolve(department, phase.id, phase.departments)
            if record is not None or resolved.found:
                return phase, record, resolved
        return None

    async def locate_department(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> Tuple[str, Optional[str]]:
        """Find the phase holding a department.

        Returns:
            (phase_id, storage_key); the key is None when only a department
            record exists

        Raises:
            DepartmentNotFound: If no phase in scope holds the department
        """
        found = await self._find_department(department, project_id, phase_id)
        if found is None:
            raise DepartmentNotFound(department, project_id)
        phase, _, resolved = found
        return phase.id, resolved.key

    async def load_budget_and_spend(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> BudgetSnapshot:
        """Load a department's allocated budget and approved spend.

        With a phase ID the figures come from that phase only. Without one,
        phases are scanned in phase order and the first phase holding the
        department supplies the figures; same-named departments in later
        phases are never added in.

        Args:
            department: Department display name
            project_id: Project ID
            phase_id: Optional phase to scope the lookup to

        Returns:
            BudgetSnapshot; allocated is 0 when the department is not found
        """
        if department == self.anonymous_department:
            return await self._load_anonymous(project_id, phase_id)

        found = await self._find_department(department, project_id, phase_id)
        if found is None:
            logger.info(f"Department '{department}' not found in project {project_id}")
            return BudgetSnapshot(department=department)

        phase, record, resolved = found
        if record is not None:
            allocated = record.total_budget
        else:
            allocated = phase.departments[resolved.key]

        expenses = await self.store.query_expenses(project_id, phase_id=phase.id)
        expenses = [
            expense for expense in expenses
            if expense.phase_id == phase.id and self._belongs_to(expense, department, resolved.key)
        ]
        spent = sum(
            expense.amount for expense in expenses
            if expense.is_approved and expense.phase_id == phase.id
        )

        only_department = []
        if await self._holds_only(project_id, phase, department):
            only_department.append((phase.id, phase.phase_name))

        return BudgetSnapshot(
            department=department,
            allocated=allocated,
            spent=spent,
            phase_ids=[phase.id],
            department_key=resolved.key,
            expenses=expenses,
            phases_with_only_department=only_department,
        )

    async def _write_flat_amount(
        self,
        project_id: str,
        phase: Phase,
        department: str,
        amount: float,
        resolved: ResolvedKey,
    ) -> str:
        """Store an amount under the composite key, dropping older keys.

        The new key and the removal of the keys it replaces go out in one
        write, so a phase never holds the department twice.
        """
        key = validate_department_name(composite_key(phase.id, department))
        stale = sorted(
            old_key for old_key in {department, resolved.key} - {key, None}
            if old_key in phase.departments
        )
        await self.store.update_phase_field(
            project_id,
            phase.id,
            _departments_field(key),
            amount,
            unset_keys=[_departments_field(old_key) for old_key in stale],
        )
        for old_key in stale:
            logger.info(f"Migrated department key '{old_key}' to '{key}' in phase {phase.id}")
        return key

    async def update_budget(
        self,
        department: str,
        project_id: str,
        new_total: float,
        phase_id: Optional[str] = None,
    ) -> UpdateResult:
        """Set a department's aggregate budget, redistributing it across phases.

        Phases keep their share of the previous total; when the department
        had no budget anywhere the new total is split equally. Department
        records get their line items rescaled, flat map entries are written
        under the composite key.

        Args:
            department: Department display name
            project_id: Project ID
            new_total: New aggregate budget
            phase_id: Optional phase to restrict the update to

        Returns:
            UpdateResult listing the amounts actually stored per phase

        Raises:
            PartialWriteFailure: If a write failed after earlier phases were written
            RemoteStoreError: If the store failed before anything was written
            ValueError: If the department name cannot be stored as a map key
        """
        validate_department_name(department)
        targets: List[Tuple[Phase, Optional[Department], ResolvedKey, float]] = []
        for phase in await self._scoped_phases(project_id, phase_id):
            record = await self.store.get_department_record(project_id, phase.id, department)
            resolved = self.resolver.resolve(department, phase.id, phase.departments)
            if record is not None:
                current = record.total_budget
            elif resolved.found:
                current = phase.departments[resolved.key]
            elif phase_id is not None:
                current = 0.0
            else:
                continue
            if record is None:
                validate_department_name(composite_key(phase.id, department))
            targets.append((phase, record, resolved, current))

        try:
            allocations = self.allocator.redistribute(
                new_total, [(phase.id, current) for phase, _, _, current in targets])
        except NoPhasesFound:
            logger.info(f"No phases hold department '{department}'; nothing to update")
            return UpdateResult(department=department, new_total=new_total)

        completed: List[str] = []
        written: List[Tuple[str, float]] = []
        try:
            for (phase, record, resolved, _), (_, amount) in zip(targets, allocations):
                if record is not None:
                    await self.store.save_department_record(
                        self.allocator.rescale_line_items(record, amount))
                    if record.total_budget <= 0 and amount > 0:
                        # Line items totalling 0 cannot be scaled up
                        logger.warning(
                            f"Department '{department}' in phase {phase.id} has no priced "
                            f"line items; its budget stays {record.total_budget} "
                            f"instead of {amount}")
                        amount = record.total_budget
                else:
                    await self._write_flat_amount(
                        project_id, phase, department, amount, resolved)
                completed.append(phase.id)
                written.append((phase.id, amount))
            project_budget = await self.recompute_project_budget(project_id)
        except Exception as e:
            logger.error(f"Failed to update budget of '{department}': {e}")
            if completed:
                raise PartialWriteFailure(completed, e) from e
            raise

        self._notify(BudgetEvent(
            type=BudgetEventType.BUDGET_UPDATED,
            project_id=project_id,
            department=department,
            phase_ids=completed,
        ))
        return UpdateResult(
            department=department,
            new_total=new_total,
            allocations=written,
            project_budget=project_budget,
        )

    async def delete_department(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> DeleteResult:
        """Remove a department and mark its expenses anonymous.

        Callers must check is_only_department_in_phase first; a phase left
        without departments is not prevented here.

        Args:
            department: Department display name
            project_id: Project ID
            phase_id: Optional phase to delete the department from

        Returns:
            DeleteResult with the affected phases and reclassified expense count

        Raises:
            PartialWriteFailure: If a write failed after earlier writes succeeded;
                it lists every phase that was changed, including one whose
                expenses were not reclassified yet
            RemoteStoreError: If the store failed before anything was written
        """
        completed: List[str] = []
        reclassified = 0
        try:
            for phase in await self._scoped_phases(project_id, phase_id):
                resolved = self.resolver.resolve(department, phase.id, phase.departments)
                keys = {department, composite_key(phase.id, department), resolved.key}
                keys = sorted(key for key in keys if key and key in phase.departments)

                removed = await self.store.delete_department_record(
                    project_id, phase.id, department)
                if removed:
                    completed.append(phase.id)
                if not removed and not keys:
                    continue

                if keys:
                    await self.store.delete_phase_field(
                        project_id, phase.id, *[_departments_field(key) for key in keys])
                    if not removed:
                        completed.append(phase.id)

                department_keys = {phase.id: resolved.key} if resolved.found else None
                reclassified += await self.reclassifier.reclassify(
                    project_id, department, [phase.id], department_keys)

            project_budget = await self.recompute_project_budget(project_id)
        except Exception as e:
            logger.error(f"Failed to delete department '{department}': {e}")
            if completed:
                raise PartialWriteFailure(completed, e) from e
            raise

        logger.info(
            f"Deleted department '{department}' from phases {completed}, "
            f"{reclassified} expenses marked anonymous")
        self._notify(BudgetEvent(
            type=BudgetEventType.DEPARTMENT_DELETED,
            project_id=project_id,
            department=department,
            phase_ids=completed,
        ))
        return DeleteResult(
            department=department,
            phase_ids=completed,
            reclassified_expenses=reclassified,
            project_budget=project_budget,
        )

    async def is_only_department_in_phase(
        self, department: str, project_id: str, phase_id: Optional[str] = None
    ) -> bool:
        for phase in await self._scoped_phases(project_id, phase_id):
            if await self._holds_only(project_id, phase, department):
                return True
        return False

    async def phases_with_only_department(
        self, department: str, project_id: str
    ) -> List[Tuple[str, str]]:
        return [
            (phase.id, phase.phase_name)
            for phase in await self.store.get_phases(project_id)
            if await self._holds_only(project_id, phase, department)
        ]

    async def add_department(
        self, project_id: str, phase_id: str, department: str, amount: float
    ) -> str:
        """Add a department budget to a phase under the composite key.

        Returns:
            The storage key written
        """
        validate_department_name(department)
        if amount < 0:
            raise ValueError("Department budget cannot be negative")
        if department == self.anonymous_department:
            raise ValueError(f"'{department}' is reserved for anonymous expenses")

        phase = await self.store.get_phase(project_id, phase_id)
        if not phase:
            raise ValueError(f"Phase not found: {phase_id}")

        key = await self._write_flat_amount(
            project_id, phase, department, amount, ResolvedKey.not_found())
        await self.recompute_project_budget(project_id)

        self._notify(BudgetEvent(
            type=BudgetEventType.DEPARTMENT_ADDED,
            project_id=project_id,
            department=department,
            phase_ids=[phase_id],
        ))
        return key

    async def recompute_project_budget(self, project_id: str) -> float:
        total = 0.0
        for phase in await self.store.get_phases(project_id):
            amounts = await department_amounts(self.store, project_id, phase)
            total += sum(amounts.values())
        await self.store.update_project_field(project_id, "budget", total)
        logger.info(f"Project {project_id} budget recomputed: {total}")
        return total
