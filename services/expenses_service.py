"""Service layer for expense persistence and reporting."""
import logging
import re
from collections import defaultdict
from typing import List, Optional, Dict, Any
from datetime import date, datetime

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection # Type hint for collection
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from models.expense import Expense, ExpenseSummary, CategoryTotal
from utils.csv_export import render_expenses_csv

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Other"
# Fields an update is allowed to overwrite; id and anything else stored stay untouched.
UPDATABLE_FIELDS = ("amount", "category", "description", "date")


class ExpenseNotFoundError(LookupError):
    """Raised when no expense exists for the requested id."""

    def __init__(self, expense_id: str):
        super().__init__(f"Expense {expense_id} not found")
        self.expense_id = expense_id


# --- Conversion helpers ---

def _parse_object_id(expense_id: str) -> ObjectId:
    """Ids that are not valid ObjectIds can never match a stored document."""
    try:
        return ObjectId(expense_id)
    except (InvalidId, TypeError):
        logger.debug(f"Rejecting malformed expense id: {expense_id!r}")
        raise ExpenseNotFoundError(expense_id)

def _document_to_expense(doc: Dict[str, Any]) -> Expense:
    if '_id' in doc: doc['id'] = str(doc.pop('_id'))
    if isinstance(doc.get('date'), datetime):
        doc['date'] = doc['date'].date()
    return Expense(**doc)

def _expense_fields_for_db(expense: Expense) -> Dict[str, Any]:
    fields = expense.model_dump(include=set(UPDATABLE_FIELDS))
    # BSON has no plain date type
    if isinstance(fields.get('date'), date):
        fields['date'] = datetime.combine(fields['date'], datetime.min.time())
    return fields

def _build_list_filter(category: Optional[str], search: Optional[str]) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if category:
        query['category'] = category
    if search:
        pattern = re.escape(search)
        query['$or'] = [
            {'description': {'$regex': pattern, '$options': 'i'}},
            {'category': {'$regex': pattern, '$options': 'i'}},
        ]
    return query

# --- Database Interaction Functions (Depend on collection passed from route) ---

async def get_all_expenses(
    collection: AsyncIOMotorCollection,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Expense]:
    """Fetches every expense in store order, optionally narrowed by category or a search term."""
    query = _build_list_filter(category, search)
    logger.info(f"Fetching expenses from collection '{collection.name}' with filter {query}...")
    try:
        expenses = [_document_to_expense(doc) async for doc in collection.find(query)]
    except PyMongoError as e:
        logger.error(f"Database error fetching expenses: {e}")
        raise ConnectionError(f"Database error fetching expenses: {e}")
    logger.info(f"Fetched {len(expenses)} expenses successfully.")
    return expenses

async def get_expense_by_id(collection: AsyncIOMotorCollection, expense_id: str) -> Expense:
    object_id = _parse_object_id(expense_id)
    try:
        doc = await collection.find_one({'_id': object_id})
    except PyMongoError as e:
        logger.error(f"Database error fetching expense {expense_id}: {e}")
        raise ConnectionError(f"Database error fetching expense: {e}")
    if doc is None:
        raise ExpenseNotFoundError(expense_id)
    return _document_to_expense(doc)

async def create_expense(collection: AsyncIOMotorCollection, expense: Expense) -> Expense:
    """Inserts a new expense. Any id supplied by the caller is discarded so the store assigns one."""
    doc = _expense_fields_for_db(expense)
    try:
        result = await collection.insert_one(doc)
    except PyMongoError as e:
        logger.error(f"Database error inserting expense: {e}")
        raise ConnectionError(f"Database error inserting expense: {e}")
    logger.info(f"Inserted expense {result.inserted_id}.")
    return await get_expense_by_id(collection, str(result.inserted_id))

async def update_expense(collection: AsyncIOMotorCollection, expense_id: str, changes: Expense) -> Expense:
    """
    Overwrites amount, category, description and date of an existing expense.

    Values absent from ``changes`` are written as null. The id and any other
    stored fields are never modified, and nothing is written for an unknown id.
    """
    object_id = _parse_object_id(expense_id)
    try:
        doc = await collection.find_one_and_update(
            {'_id': object_id},
            {'$set': _expense_fields_for_db(changes)},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        logger.error(f"Database error updating expense {expense_id}: {e}")
        raise ConnectionError(f"Database error updating expense: {e}")
    if doc is None:
        raise ExpenseNotFoundError(expense_id)
    logger.info(f"Updated expense {expense_id}.")
    return _document_to_expense(doc)

async def delete_expense(collection: AsyncIOMotorCollection, expense_id: str) -> None:
    object_id = _parse_object_id(expense_id)
    try:
        result = await collection.delete_one({'_id': object_id})
    except PyMongoError as e:
        logger.error(f"Database error deleting expense {expense_id}: {e}")
        raise ConnectionError(f"Database error deleting expense: {e}")
    if result.deleted_count == 0:
        raise ExpenseNotFoundError(expense_id)
    logger.info(f"Deleted expense {expense_id}.")

async def delete_all_expenses(collection: AsyncIOMotorCollection) -> int:
    """Deletes all documents from the specified expense collection."""
    logger.warning(f"Attempting to delete ALL documents from collection '{collection.name}'.")
    try:
        result = await collection.delete_many({})
    except PyMongoError as e:
        logger.error(f"Database error during delete_many operation: {e}")
        raise ConnectionError(f"Database error deleting expenses: {e}")
    logger.info(f"Successfully deleted {result.deleted_count} documents from collection '{collection.name}'.")
    return result.deleted_count

# --- Reporting ---

async def summarize_expenses(collection: AsyncIOMotorCollection) -> ExpenseSummary:
    """Total spend and per-category totals, largest category first."""
    totals: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    try:
        async for doc in collection.find({}, {'amount': 1, 'category': 1}):
            category = doc.get('category') or UNCATEGORIZED
            totals[category] += doc.get('amount') or 0.0
            counts[category] += 1
    except PyMongoError as e:
        logger.error(f"Database error summarizing expenses: {e}")
        raise ConnectionError(f"Database error summarizing expenses: {e}")

    by_category = sorted(
        (CategoryTotal(category=name, total=totals[name], count=counts[name]) for name in totals),
        key=lambda item: item.total,
        reverse=True,
    )
    return ExpenseSummary(
        total=sum(totals.values()),
        count=sum(counts.values()),
        by_category=by_category,
    )

async def export_expenses_csv(collection: AsyncIOMotorCollection) -> str:
    expenses = await get_all_expenses(collection)
    logger.info(f"Exporting {len(expenses)} expenses as CSV.")
    return render_expenses_csv(expenses)

async def ping(collection: AsyncIOMotorCollection) -> bool:
    try:
        await collection.database.command('ping')
    except PyMongoError as e:
        logger.warning(f"MongoDB ping failed: {e}")
        return False
    return True
