from datetime import date, datetime

import anyio
import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from models.expense import Expense
from services import expenses_service


def test_create_stores_date_as_datetime(collection):
    async def run():
        created = await expenses_service.create_expense(
            collection, Expense(amount=12.5, category="Food", description="Lunch", date=date(2024, 1, 2))
        )
        raw = await collection.find_one({"_id": ObjectId(created.id)})
        return created, raw

    created, raw = anyio.run(run)
    assert created.date == date(2024, 1, 2)
    assert raw["date"] == datetime(2024, 1, 2)
    assert "id" not in raw


def test_update_leaves_other_stored_fields_alone(collection):
    async def run():
        result = await collection.insert_one({"amount": 1.0, "category": "Food", "note": "legacy"})
        expense_id = str(result.inserted_id)
        updated = await expenses_service.update_expense(
            collection, expense_id, Expense(amount=2.0, category="Bills", description="Power")
        )
        raw = await collection.find_one({"_id": result.inserted_id})
        return expense_id, updated, raw

    expense_id, updated, raw = anyio.run(run)
    assert updated.id == expense_id
    assert updated.amount == 2.0
    assert raw["note"] == "legacy"
    assert raw["description"] == "Power"


def test_not_found_errors_carry_the_id(collection):
    missing = str(ObjectId())

    async def run():
        await expenses_service.delete_expense(collection, missing)

    with pytest.raises(expenses_service.ExpenseNotFoundError) as excinfo:
        anyio.run(run)
    assert excinfo.value.expense_id == missing


def test_summarize_empty_collection(collection):
    summary = anyio.run(expenses_service.summarize_expenses, collection)
    assert summary.total == 0.0
    assert summary.count == 0
    assert summary.by_category == []


def test_summarize_treats_missing_amount_as_zero(collection):
    async def run():
        await collection.insert_many([
            {"category": "Food", "amount": 3.0},
            {"category": "Food"},
            {"amount": 4.0},
        ])
        return await expenses_service.summarize_expenses(collection)

    summary = anyio.run(run)
    assert summary.total == 7.0
    assert summary.count == 3
    assert [(item.category, item.total, item.count) for item in summary.by_category] == [
        ("Other", 4.0, 1),
        ("Food", 3.0, 2),
    ]


def test_search_term_is_matched_literally(collection):
    async def run():
        await collection.insert_many([
            {"description": "Coffee (large)", "category": "Food"},
            {"description": "Coffee", "category": "Food"},
        ])
        return await expenses_service.get_all_expenses(collection, search="(large)")

    expenses = anyio.run(run)
    assert [expense.description for expense in expenses] == ["Coffee (large)"]


class _UnreachableCollection:
    name = "expenses"

    def find(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers available")


def test_database_errors_surface_as_connection_errors():
    with pytest.raises(ConnectionError):
        anyio.run(expenses_service.get_all_expenses, _UnreachableCollection())
