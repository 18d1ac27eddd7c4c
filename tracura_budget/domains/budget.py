"""
Budget domain models.

These models describe projects, their phases, department budget records and
expenses as they are persisted in the document store, plus the value objects
returned by the reconciliation services.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Display name used for expenses that no longer belong to a department
ANONYMOUS_DEPARTMENT = "Other"


class StoredModel(BaseModel):
    """Base for documents stored with camelCase field names."""
    model_config = ConfigDict(
        populate_by_name=True, use_enum_values=True, validate_default=True)


class ExpenseStatus(str, Enum):
    """Approval status of an expense."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PaymentMode(str, Enum):
    """How an expense was paid."""
    CASH = "By cash"
    UPI = "By UPI"
    CHECK = "By check"
    CARD = "By Card"


class ContractorMode(str, Enum):
    """Contracting arrangement of a department."""
    LABOUR_ONLY = "Labour-Only"
    TURNKEY = "Turnkey"


class Project(StoredModel):
    """Project model."""
    id: str = Field("", description="Unique identifier")
    name: str = Field("", description="Project name")
    budget: float = Field(0.0, description="Sum of all phase department budgets")
    team_members: List[str] = Field(
        default_factory=list, alias="teamMembers", description="Team member identifiers")
    created_at: datetime = Field(
        default_factory=datetime.now, alias="createdAt", description="Creation time")
    updated_at: datetime = Field(
        default_factory=datetime.now, alias="updatedAt", description="Last update time")


class Phase(StoredModel):
    """A phase of a project owning its department budget map."""
    id: str = Field("", description="Unique identifier")
    project_id: str = Field(..., alias="projectId", description="Owning project ID")
    phase_name: str = Field("", alias="phaseName", description="Phase name")
    phase_number: int = Field(
        0, alias="phaseNumber", description="Order of the phase (1, 2, 3, ...)")
    start_date: Optional[str] = Field(
        None, alias="startDate", description="Start date (dd/MM/yyyy)")
    end_date: Optional[str] = Field(
        None, alias="endDate", description="End date (dd/MM/yyyy)")
    departments: Dict[str, float] = Field(
        default_factory=dict, description="Department key to allocated budget")
    categories: List[str] = Field(
        default_factory=list, description="Expense categories for this phase")
    is_enabled: Optional[bool] = Field(
        None, alias="isEnabled", description="Whether the phase is enabled")
    created_at: datetime = Field(
        default_factory=datetime.now, alias="createdAt", description="Creation time")
    updated_at: datetime = Field(
        default_factory=datetime.now, alias="updatedAt", description="Last update time")

    @property
    def total_budget(self) -> float:
        return sum(self.departments.values())

    @property
    def is_enabled_value(self) -> bool:
        # Absent in older documents
        return True if self.is_enabled is None else self.is_enabled


class DepartmentLineItem(StoredModel):
    """A priced line item of a department budget."""
    item_type: str = Field("", alias="itemType", description="Item type")
    item: str = Field("", description="Item")
    spec: str = Field("", description="Specification")
    quantity: float = Field(0.0, description="Quantity")
    uom: str = Field("", description="Unit of measurement")
    unit_price: float = Field(0.0, alias="unitPrice", description="Price per unit")

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


class Department(StoredModel):
    """Department record stored beneath a phase.

    When present it is authoritative over the phase's flat department map.
    """
    id: str = Field("", description="Unique identifier")
    name: str = Field(..., description="Department display name")
    contractor_mode: ContractorMode = Field(
        ContractorMode.LABOUR_ONLY, alias="contractorMode", description="Contractor mode")
    line_items: List[DepartmentLineItem] = Field(
        default_factory=list, alias="lineItems", description="Budget line items")
    phase_id: str = Field(..., alias="phaseId", description="Parent phase ID")
    project_id: str = Field(..., alias="projectId", description="Parent project ID")
    created_at: datetime = Field(
        default_factory=datetime.now, alias="createdAt", description="Creation time")
    updated_at: datetime = Field(
        default_factory=datetime.now, alias="updatedAt", description="Last update time")

    @property
    def total_budget(self) -> float:
        return sum(item.total for item in self.line_items)


class Expense(StoredModel):
    """Expense submitted against a project phase and department."""
    id: str = Field("", description="Unique identifier")
    project_id: str = Field(..., alias="projectId", description="Project ID")
    date: str = Field("", description="Expense date (dd/MM/yyyy)")
    amount: float = Field(..., description="Expense amount")
    department: str = Field(
        ..., description="Department key or display name; may reference a deleted department")
    phase_id: Optional[str] = Field(None, alias="phaseId", description="Phase ID")
    phase_name: Optional[str] = Field(None, alias="phaseName", description="Phase name")
    categories: List[str] = Field(default_factory=list, description="Category names")
    mode_of_payment: PaymentMode = Field(
        PaymentMode.CASH, alias="modeOfPayment", description="Payment mode")
    description: str = Field("", description="Expense description")
    submitted_by: str = Field("", alias="submittedBy", description="Submitter phone number")
    status: ExpenseStatus = Field(ExpenseStatus.PENDING, description="Approval status")
    remark: Optional[str] = Field(None, description="Approval or rejection remark")
    is_admin: bool = Field(False, alias="isAdmin", description="Requires admin approval")
    is_anonymous: Optional[bool] = Field(
        None, alias="isAnonymous", description="Department was deleted")
    original_department: Optional[str] = Field(
        None, alias="originalDepartment", description="Department name before deletion")
    department_deleted_at: Optional[datetime] = Field(
        None, alias="departmentDeletedAt", description="When the department was deleted")
    approved_by: Optional[str] = Field(None, alias="approvedBy", description="Approver")
    approved_at: Optional[datetime] = Field(None, alias="approvedAt", description="Approval time")
    rejected_by: Optional[str] = Field(None, alias="rejectedBy", description="Rejecter")
    rejected_at: Optional[datetime] = Field(None, alias="rejectedAt", description="Rejection time")
    created_at: datetime = Field(
        default_factory=datetime.now, alias="createdAt", description="Creation time")
    updated_at: datetime = Field(
        default_factory=datetime.now, alias="updatedAt", description="Last update time")

    @property
    def is_approved(self) -> bool:
        return self.status == ExpenseStatus.APPROVED


class KeyKind(str, Enum):
    """Which storage scheme a resolved department key belongs to."""
    COMPOSITE = "composite"
    LEGACY = "legacy"
    SUFFIX = "suffix"
    NOT_FOUND = "not_found"


class ResolvedKey(BaseModel):
    """Result of resolving a department inside one phase."""
    kind: KeyKind = Field(..., description="Matched key scheme")
    key: Optional[str] = Field(None, description="Matched storage key")

    @property
    def found(self) -> bool:
        return self.kind != KeyKind.NOT_FOUND

    @classmethod
    def not_found(cls) -> "ResolvedKey":
        return cls(kind=KeyKind.NOT_FOUND)


class BudgetSnapshot(BaseModel):
    """Allocated and spent figures for a department in one phase."""
    department: str = Field(..., description="Department display name")
    allocated: float = Field(0.0, description="Allocated budget")
    spent: float = Field(0.0, description="Sum of approved expenses")
    phase_ids: List[str] = Field(
        default_factory=list, description="Phases the figures were taken from")
    department_key: Optional[str] = Field(
        None, description="Storage key the department was found under")
    expenses: List[Expense] = Field(
        default_factory=list, description="Expenses of the department, newest first")
    phases_with_only_department: List[Tuple[str, str]] = Field(
        default_factory=list, description="(phase_id, phase_name) pairs holding only this department")

    @property
    def remaining(self) -> float:
        return self.allocated - self.spent


class UpdateResult(BaseModel):
    """Outcome of a budget update."""
    department: str = Field(..., description="Department display name")
    new_total: float = Field(..., description="Requested aggregate budget")
    allocations: List[Tuple[str, float]] = Field(
        default_factory=list, description="(phase_id, new_amount) pairs written")
    project_budget: Optional[float] = Field(
        None, description="Recomputed project aggregate budget")

    @property
    def updated_phase_ids(self) -> List[str]:
        return [phase_id for phase_id, _ in self.allocations]


class DeleteResult(BaseModel):
    """Outcome of a department deletion."""
    department: str = Field(..., description="Department display name")
    phase_ids: List[str] = Field(
        default_factory=list, description="Phases the department was removed from")
    reclassified_expenses: int = Field(0, description="Expenses marked anonymous")
    project_budget: Optional[float] = Field(
        None, description="Recomputed project aggregate budget")


class BudgetEventType(str, Enum):
    """Kinds of change notifications emitted to observers."""
    BUDGET_UPDATED = "budget_updated"
    DEPARTMENT_DELETED = "department_deleted"
    DEPARTMENT_ADDED = "department_added"


class BudgetEvent(BaseModel):
    """Change notification delivered to observers."""
    type: BudgetEventType = Field(..., description="Event type")
    project_id: str = Field(..., description="Project ID")
    department: str = Field(..., description="Department display name")
    phase_ids: List[str] = Field(default_factory=list, description="Affected phases")
    timestamp: datetime = Field(
        default_factory=datetime.now, description="When the change happened")


class DepartmentTotals(BaseModel):
    """Budget and spend of one department name across phases."""
    total: float = Field(0.0, description="Allocated budget across phases")
    spent: float = Field(0.0, description="Approved spend across phases")


class PhaseBudgetSummary(BaseModel):
    """Budget and spend of a single phase."""
    phase_id: str = Field(..., description="Phase ID")
    phase_name: str = Field("", description="Phase name")
    total_budget: float = Field(0.0, description="Sum of department budgets")
    spent: float = Field(0.0, description="Approved spend excluding anonymous expenses")
    anonymous_spent: float = Field(0.0, description="Approved anonymous spend")
    department_spent: Dict[str, float] = Field(
        default_factory=dict, description="Approved spend by composite department key")


class ProjectBudgetSummary(BaseModel):
    """Project-wide budget rollup."""
    project_id: str = Field(..., description="Project ID")
    phases: List[PhaseBudgetSummary] = Field(
        default_factory=list, description="Per-phase summaries in phase order")
    departments: Dict[str, DepartmentTotals] = Field(
        default_factory=dict, description="Totals by department display name")

    @property
    def total_budget(self) -> float:
        return sum(phase.total_budget for phase in self.phases)

    @property
    def total_spent(self) -> float:
        return sum(phase.spent for phase in self.phases)
