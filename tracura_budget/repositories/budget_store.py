"""
MongoDB implementation of the budget store.

Projects, phases, department records and expenses are kept in four
collections. Phases, department records and expenses carry the owning
``projectId``; department records also carry their ``phaseId``.
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pymongo.errors import PyMongoError

from tracura_budget.domains import (
    Department,
    Expense,
    ExpenseStatus,
    Phase,
    RemoteStoreError,
)
from tracura_budget.interfaces.providers.data_storage import DataStorageProvider
from tracura_budget.interfaces.repositories.budget_store import BudgetStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_COLLECTIONS = {
    "projects": "projects",
    "phases": "phases",
    "departments": "departments",
    "expenses": "expenses",
}


class MongoBudgetStore(BudgetStore):
    """MongoDB implementation of BudgetStore."""

    def __init__(
        self,
        db_adapter: DataStorageProvider,
        collections: Optional[Dict[str, str]] = None,
    ):
        """Initialize the budget store.

        Args:
            db_adapter: MongoDB adapter
            collections: Optional overrides of the collection names
        """
        self.db = db_adapter
        names = {**DEFAULT_COLLECTIONS, **(collections or {})}
        self.projects = names["projects"]
        self.phases = names["phases"]
        self.departments = names["departments"]
        self.expenses = names["expenses"]

        # Ensure collections exist
        for name in (self.projects, self.phases, self.departments, self.expenses):
            self.db.create_collection(name)

        # Create indexes
        self.db.create_index(self.phases, [("projectId", 1), ("phaseNumber", 1)])
        self.db.create_index(
            self.departments, [("projectId", 1), ("phaseId", 1), ("name", 1)])
        self.db.create_index(self.expenses, [("projectId", 1), ("phaseId", 1)])
        self.db.create_index(self.expenses, [("projectId", 1), ("isAnonymous", 1)])

    async def _run(self, func, *args, **kwargs):
        """Run a blocking driver call off the event loop."""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except PyMongoError as e:
            name = getattr(func, "__name__", repr(func))
            logger.error(f"Budget store call {name} failed: {e}")
            raise RemoteStoreError(str(e)) from e

    @staticmethod
    def _to_document(model: BaseModel) -> Dict[str, Any]:
        document = model.model_dump(by_alias=True, exclude={"id"})
        document["_id"] = model.id
        return document

    @staticmethod
    def _from_document(model_class: Type[ModelT], document: Dict[str, Any]) -> ModelT:
        data = dict(document)
        data["id"] = str(data.pop("_id"))
        return model_class.model_validate(data)

    async def update_project_field(self, project_id: str, key: str, value: Any) -> None:
        matched = await self._run(
            self.db.update_one,
            self.projects,
            {"_id": project_id},
            {"$set": {key: value, "updatedAt": datetime.now()}},
        )
        if not matched:
            raise RemoteStoreError(f"No project to update: {project_id}")

    async def get_phases(self, project_id: str) -> List[Phase]:
        documents = await self._run(
            self.db.find,
            self.phases,
            {"projectId": project_id},
            sort=[("phaseNumber", 1)],
        )
        return [self._from_document(Phase, document) for document in documents]

    async def get_phase(self, project_id: str, phase_id: str) -> Optional[Phase]:
        document = await self._run(
            self.db.find_one, self.phases, {"_id": phase_id, "projectId": project_id})
        if not document:
            return None
        return self._from_document(Phase, document)

    async def update_phase_field(
        self,
        project_id: str,
        phase_id: str,
        key: str,
        value: Any,
        unset_keys: Optional[List[str]] = None,
    ) -> None:
        update: Dict[str, Any] = {"$set": {key: value, "updatedAt": datetime.now()}}
        if unset_keys:
            update["$unset"] = {unset_key: "" for unset_key in unset_keys}
        matched = await self._run(
            self.db.update_one,
            self.phases,
            {"_id": phase_id, "projectId": project_id},
            update,
        )
        if not matched:
            raise RemoteStoreError(f"No phase to update: {phase_id}")

    async def delete_phase_field(self, project_id: str, phase_id: str, *keys: str) -> None:
        if not keys:
            return
        matched = await self._run(
            self.db.update_one,
            self.phases,
            {"_id": phase_id, "projectId": project_id},
            {"$unset": {key: "" for key in keys}, "$set": {"updatedAt": datetime.now()}},
        )
        if not matched:
            raise RemoteStoreError(f"No phase to update: {phase_id}")

    async def get_department_record(
        self, project_id: str, phase_id: str, name: str
    ) -> Optional[Department]:
        document = await self._run(
            self.db.find_one,
            self.departments,
            {"projectId": project_id, "phaseId": phase_id, "name": name},
        )
        if not document:
            return None
        return self._from_document(Department, document)

    async def list_department_records(self, project_id: str, phase_id: str) -> List[Department]:
        documents = await self._run(
            self.db.find,
            self.departments,
            {"projectId": project_id, "phaseId": phase_id},
            sort=[("createdAt", 1)],
        )
        return [self._from_document(Department, document) for document in documents]

    async def save_department_record(self, department: Department) -> str:
        if not department.id:
            department.id = str(uuid.uuid4())
        department.updated_at = datetime.now()
        document = self._to_document(department)
        await self._run(
            self.db.replace_one, self.departments, {"_id": department.id}, document)
        return department.id

    async def delete_department_record(self, project_id: str, phase_id: str, name: str) -> int:
        return await self._run(
            self.db.delete_many,
            self.departments,
            {"projectId": project_id, "phaseId": phase_id, "name": name},
        )

    async def query_expenses(
        self,
        project_id: str,
        phase_id: Optional[str] = None,
        department: Optional[str] = None,
        status: Optional[ExpenseStatus] = None,
        is_anonymous: Optional[bool] = None,
    ) -> List[Expense]:
        query: Dict[str, Any] = {"projectId": project_id}
        if phase_id is not None:
            query["phaseId"] = phase_id
        if department is not None:
            query["department"] = department
        if status is not None:
            query["status"] = ExpenseStatus(status).value
        if is_anonymous is True:
            query["isAnonymous"] = True
        elif is_anonymous is False:
            # Older expenses have no isAnonymous field at all
            query["isAnonymous"] = {"$ne": True}

        documents = await self._run(
            self.db.find, self.expenses, query, sort=[("createdAt", -1)])
        return [self._from_document(Expense, document) for document in documents]

    async def batch_update_expenses(self, expense_ids: List[str], fields: Dict[str, Any]) -> int:
        if not expense_ids:
            return 0
        return await self._run(
            self.db.update_many,
            self.expenses,
            {"_id": {"$in": list(expense_ids)}},
            {"$set": fields},
        )

    async def get_expense(self, expense_id: str) -> Optional[Expense]:
        document = await self._run(self.db.find_one, self.expenses, {"_id": expense_id})
        if not document:
            return None
        return self._from_document(Expense, document)

    async def transition_expense_status(
        self,
        expense_id: str,
        from_status: ExpenseStatus,
        to_status: ExpenseStatus,
        fields: Dict[str, Any],
    ) -> bool:
        # Status filter turns check-and-set into one write
        update: Dict[str, Any] = {
            "$set": {
                **fields,
                "status": ExpenseStatus(to_status).value,
                "updatedAt": datetime.now(),
            }
        }
        cleared = [key for key, value in fields.items() if value is None]
        if cleared:
            for key in cleared:
                del update["$set"][key]
            update["$unset"] = {key: "" for key in cleared}
        return await self._run(
            self.db.update_one,
            self.expenses,
            {"_id": expense_id, "status": ExpenseStatus(from_status).value},
            update,
        )
