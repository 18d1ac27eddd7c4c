"""
Tests for the MongoDB budget store.

This module tests MongoBudgetStore against an in-memory mongomock database and
checks that driver failures surface as RemoteStoreError.
"""
import pytest
import mongomock
from datetime import datetime
from unittest.mock import Mock
from pymongo.errors import ConnectionFailure

from tracura_budget.adapters.mongodb_adapter import MongoDBAdapter
from tracura_budget.domains import (
    Department,
    DepartmentLineItem,
    ExpenseStatus,
    RemoteStoreError,
)
from tracura_budget.repositories.budget_store import MongoBudgetStore


@pytest.fixture
def mongodb_adapter():
    """Create a MongoDB adapter backed by mongomock."""
    client = mongomock.MongoClient()
    adapter = MongoDBAdapter(
        connection_string=client.HOST, database_name="tracura_test", use_transactions=False)
    adapter.client = client
    adapter.db = client["tracura_test"]
    return adapter


@pytest.fixture
def store(mongodb_adapter):
    """Create a budget store with seeded data."""
    db = mongodb_adapter.db
    db["projects"].insert_one({"_id": "proj-1", "name": "Feature Film", "budget": 0})
    db["phases"].insert_many([
        {
            "_id": "B", "projectId": "proj-1", "phaseName": "Shoot", "phaseNumber": 2,
            "departments": {"Costumes": 5000.0, "B_Props": 800.0},
        },
        {
            "_id": "A", "projectId": "proj-1", "phaseName": "Prep", "phaseNumber": 1,
            "departments": {"A_Costumes": 10000.0},
        },
        {"_id": "X", "projectId": "proj-2", "phaseNumber": 1, "departments": {}},
    ])
    db["expenses"].insert_many([
        {
            "_id": "e1", "projectId": "proj-1", "phaseId": "A", "department": "Costumes",
            "amount": 100.0, "status": "APPROVED", "createdAt": datetime(2024, 4, 1),
        },
        {
            "_id": "e2", "projectId": "proj-1", "phaseId": "A", "department": "A_Costumes",
            "amount": 50.0, "status": "PENDING", "createdAt": datetime(2024, 4, 3),
        },
        {
            "_id": "e3", "projectId": "proj-1", "phaseId": "B", "department": "Props",
            "amount": 20.0, "status": "APPROVED", "isAnonymous": True,
            "originalDepartment": "Props", "createdAt": datetime(2024, 4, 2),
        },
    ])
    return MongoBudgetStore(mongodb_adapter)


class TestMongoBudgetStore:
    """Tests for MongoBudgetStore."""

    def test_init_creates_collections(self, mongodb_adapter):
        """Test the store creates its collections and indexes."""
        MongoBudgetStore(mongodb_adapter, collections={"expenses": "budget_expenses"})
        names = mongodb_adapter.db.list_collection_names()
        for name in ("projects", "phases", "departments", "budget_expenses"):
            assert name in names
        indexes = mongodb_adapter.db["phases"].index_information()
        assert "projectId_1_phaseNumber_1" in indexes

    @pytest.mark.asyncio
    async def test_update_project_field(self, store):
        await store.update_project_field("proj-1", "budget", 15800.0)
        project = store.db.db["projects"].find_one({"_id": "proj-1"})
        assert project["budget"] == 15800.0
        assert isinstance(project["updatedAt"], datetime)

    @pytest.mark.asyncio
    async def test_update_missing_project(self, store):
        with pytest.raises(RemoteStoreError):
            await store.update_project_field("missing", "budget", 1.0)

    @pytest.mark.asyncio
    async def test_get_phases_in_phase_order(self, store):
        phases = await store.get_phases("proj-1")
        assert [phase.id for phase in phases] == ["A", "B"]
        assert phases[1].departments == {"Costumes": 5000.0, "B_Props": 800.0}

    @pytest.mark.asyncio
    async def test_get_phase_scoped_to_project(self, store):
        phase = await store.get_phase("proj-1", "A")
        assert phase.phase_name == "Prep"
        assert await store.get_phase("proj-2", "A") is None

    @pytest.mark.asyncio
    async def test_update_phase_field(self, store):
        await store.update_phase_field("proj-1", "B", "departments.B_Costumes", 6000.0)
        phase = await store.get_phase("proj-1", "B")
        assert phase.departments["B_Costumes"] == 6000.0
        assert phase.departments["Costumes"] == 5000.0

    @pytest.mark.asyncio
    async def test_update_phase_field_renames_key(self, store):
        await store.update_phase_field(
            "proj-1", "B", "departments.B_Costumes", 6000.0,
            unset_keys=["departments.Costumes"])
        phase = await store.get_phase("proj-1", "B")
        assert phase.departments == {"B_Costumes": 6000.0, "B_Props": 800.0}

    @pytest.mark.asyncio
    async def test_rename_is_a_single_write(self, store):
        update_one = Mock(wraps=store.db.update_one)
        store.db.update_one = update_one

        await store.update_phase_field(
            "proj-1", "B", "departments.B_Costumes", 6000.0,
            unset_keys=["departments.Costumes"])

        update_one.assert_called_once()
        update = update_one.call_args.args[2]
        assert update["$unset"] == {"departments.Costumes": ""}
        assert update["$set"]["departments.B_Costumes"] == 6000.0

    @pytest.mark.asyncio
    async def test_update_phase_field_missing_phase(self, store):
        with pytest.raises(RemoteStoreError):
            await store.update_phase_field("proj-1", "Z", "departments.Z_Props", 1.0)

    @pytest.mark.asyncio
    async def test_delete_phase_field(self, store):
        await store.delete_phase_field("proj-1", "B", "departments.Costumes")
        phase = await store.get_phase("proj-1", "B")
        assert phase.departments == {"B_Props": 800.0}

    @pytest.mark.asyncio
    async def test_delete_several_phase_fields(self, store):
        await store.delete_phase_field("proj-1", "B", "departments.Costumes", "departments.B_Props")
        phase = await store.get_phase("proj-1", "B")
        assert phase.departments == {}

    @pytest.mark.asyncio
    async def test_delete_no_phase_fields(self, store):
        await store.delete_phase_field("proj-1", "Z")
        phase = await store.get_phase("proj-1", "B")
        assert phase.departments == {"Costumes": 5000.0, "B_Props": 800.0}

    @pytest.mark.asyncio
    async def test_department_record_round_trip(self, store):
        record = Department(
            name="Lighting",
            phase_id="A",
            project_id="proj-1",
            line_items=[DepartmentLineItem(item="LED panel", quantity=2, unit_price=750)],
        )
        record_id = await store.save_department_record(record)
        assert record_id

        loaded = await store.get_department_record("proj-1", "A", "Lighting")
        assert loaded.id == record_id
        assert loaded.total_budget == 1500
        assert loaded.line_items[0].item == "LED panel"
        assert await store.get_department_record("proj-1", "B", "Lighting") is None

        loaded.line_items[0].unit_price = 1000
        assert await store.save_department_record(loaded) == record_id
        records = await store.list_department_records("proj-1", "A")
        assert len(records) == 1
        assert records[0].total_budget == 2000

    @pytest.mark.asyncio
    async def test_delete_department_record(self, store):
        await store.save_department_record(
            Department(name="Lighting", phase_id="A", project_id="proj-1"))
        assert await store.delete_department_record("proj-1", "A", "Lighting") == 1
        assert await store.delete_department_record("proj-1", "A", "Lighting") == 0
        assert await store.list_department_records("proj-1", "A") == []

    @pytest.mark.asyncio
    async def test_query_expenses_newest_first(self, store):
        expenses = await store.query_expenses("proj-1")
        assert [expense.id for expense in expenses] == ["e2", "e3", "e1"]

    @pytest.mark.asyncio
    async def test_query_expenses_filters(self, store):
        by_phase = await store.query_expenses("proj-1", phase_id="A")
        assert {expense.id for expense in by_phase} == {"e1", "e2"}

        approved = await store.query_expenses("proj-1", status=ExpenseStatus.APPROVED)
        assert {expense.id for expense in approved} == {"e1", "e3"}

        by_department = await store.query_expenses("proj-1", department="A_Costumes")
        assert [expense.id for expense in by_department] == ["e2"]

    @pytest.mark.asyncio
    async def test_query_expenses_anonymous_flag(self, store):
        anonymous = await store.query_expenses("proj-1", is_anonymous=True)
        assert [expense.id for expense in anonymous] == ["e3"]
        assert anonymous[0].original_department == "Props"

        # Expenses without the field count as not anonymous
        named = await store.query_expenses("proj-1", is_anonymous=False)
        assert {expense.id for expense in named} == {"e1", "e2"}

    @pytest.mark.asyncio
    async def test_batch_update_expenses(self, store):
        deleted_at = datetime(2024, 5, 1)
        updated = await store.batch_update_expenses(
            ["e1", "e2"],
            {"isAnonymous": True, "originalDepartment": "Costumes", "departmentDeletedAt": deleted_at},
        )
        assert updated == 2

        anonymous = await store.query_expenses("proj-1", phase_id="A", is_anonymous=True)
        assert {expense.id for expense in anonymous} == {"e1", "e2"}
        assert all(expense.original_department == "Costumes" for expense in anonymous)

    @pytest.mark.asyncio
    async def test_batch_update_nothing(self, store):
        assert await store.batch_update_expenses([], {"isAnonymous": True}) == 0

    @pytest.mark.asyncio
    async def test_get_expense(self, store):
        expense = await store.get_expense("e2")
        assert expense.amount == 50.0
        assert expense.status == ExpenseStatus.PENDING
        assert await store.get_expense("missing") is None

    @pytest.mark.asyncio
    async def test_transition_expense_status(self, store):
        approved_at = datetime(2024, 5, 2)
        moved = await store.transition_expense_status(
            "e2",
            ExpenseStatus.PENDING,
            ExpenseStatus.APPROVED,
            {"approvedBy": "user-7", "approvedAt": approved_at, "rejectedBy": None},
        )
        assert moved is True

        stored = store.db.db["expenses"].find_one({"_id": "e2"})
        assert stored["status"] == "APPROVED"
        assert stored["approvedBy"] == "user-7"
        assert stored["approvedAt"] == approved_at
        assert "rejectedBy" not in stored

    @pytest.mark.asyncio
    async def test_transition_requires_current_status(self, store):
        moved = await store.transition_expense_status(
            "e1", ExpenseStatus.PENDING, ExpenseStatus.REJECTED, {"rejectedBy": "user-7"})
        assert moved is False
        assert store.db.db["expenses"].find_one({"_id": "e1"})["status"] == "APPROVED"


class TestStoreErrors:
    """Driver failures are wrapped in RemoteStoreError."""

    @pytest.fixture
    def failing_store(self):
        adapter = Mock()
        adapter.find_one.side_effect = ConnectionFailure("connection refused")
        adapter.find.side_effect = ConnectionFailure("connection refused")
        adapter.update_one.side_effect = ConnectionFailure("connection refused")
        return MongoBudgetStore(adapter)

    @pytest.mark.asyncio
    async def test_read_failure(self, failing_store):
        with pytest.raises(RemoteStoreError) as exc_info:
            await failing_store.get_phases("proj-1")
        assert "connection refused" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ConnectionFailure)

    @pytest.mark.asyncio
    async def test_write_failure(self, failing_store):
        with pytest.raises(RemoteStoreError):
            await failing_store.update_phase_field("proj-1", "A", "departments.A_Props", 1.0)

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        adapter = Mock()
        adapter.find_one.side_effect = KeyError("bad")
        store = MongoBudgetStore(adapter)
        with pytest.raises(KeyError):
            await store.get_expense("e1")
