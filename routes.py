"""API Routes for expenses"""
from fastapi import APIRouter, HTTPException, Depends, Request, Query, Response, status
from typing import List, Annotated, Optional
from services import expenses_service
from models.expense import Expense, ExpenseSummary
from utils.csv_export import export_filename
from motor.motor_asyncio import AsyncIOMotorCollection
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

# --- Dependency Function ---
def get_expenses_collection(request: Request) -> AsyncIOMotorCollection:
    """Dependency to get the MongoDB expenses collection from the request state."""
    collection = request.state.expenses_collection
    if collection is None:
        logger.error("Expenses collection not found in application state. Check MongoDB connection.")
        raise HTTPException(status_code=503, detail="Database service not available.")
    return collection

# Type hint for the dependency
ExpensesCollectionDep = Annotated[AsyncIOMotorCollection, Depends(get_expenses_collection)]

def _database_unavailable(error: ConnectionError) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Database connection error: {error}")

# --- API Routes ---

@router.get("/expenses", response_model=List[Expense], summary="Get All Expenses", description="Retrieves all expense records in store order.")
async def list_expenses(
    collection: ExpensesCollectionDep,
    category: Optional[str] = Query(None, description="Only return expenses with exactly this category."),
    search: Optional[str] = Query(None, description="Case-insensitive match against description or category."),
) -> List[Expense]:
    logger.info(f"GET /expenses endpoint called. category={category!r} search={search!r}")
    try:
        return await expenses_service.get_all_expenses(collection, category=category, search=search)
    except ConnectionError as ce:
        logger.error(f"Connection error fetching expenses: {ce}")
        raise _database_unavailable(ce)

@router.get("/expenses/summary", response_model=ExpenseSummary, summary="Summarize Expenses", description="Total spend plus per-category totals.")
async def summarize_expenses(collection: ExpensesCollectionDep) -> ExpenseSummary:
    logger.info("GET /expenses/summary endpoint called.")
    try:
        return await expenses_service.summarize_expenses(collection)
    except ConnectionError as ce:
        logger.error(f"Connection error summarizing expenses: {ce}")
        raise _database_unavailable(ce)

@router.get("/expenses/export", summary="Export Expenses", description="Downloads every expense as a CSV file.", response_class=Response)
async def export_expenses(collection: ExpensesCollectionDep) -> Response:
    logger.info("GET /expenses/export endpoint called.")
    try:
        content = await expenses_service.export_expenses_csv(collection)
    except ConnectionError as ce:
        logger.error(f"Connection error exporting expenses: {ce}")
        raise _database_unavailable(ce)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )

@router.get("/expenses/{expense_id}", response_model=Expense, summary="Get Expense")
async def get_expense(expense_id: str, collection: ExpensesCollectionDep) -> Expense:
    logger.info(f"GET /expenses/{expense_id} endpoint called.")
    try:
        return await expenses_service.get_expense_by_id(collection, expense_id)
    except ConnectionError as ce:
        logger.error(f"Connection error fetching expense {expense_id}: {ce}")
        raise _database_unavailable(ce)

@router.post("/expenses", response_model=Expense, status_code=status.HTTP_201_CREATED, summary="Create Expense", description="Stores a new expense. A client-supplied id is ignored.")
async def create_expense(expense: Expense, collection: ExpensesCollectionDep) -> Expense:
    logger.info("POST /expenses endpoint called.")
    if expense.id is not None:
        logger.debug(f"Discarding client-supplied id {expense.id!r}.")
        expense.id = None
    try:
        return await expenses_service.create_expense(collection, expense)
    except ConnectionError as ce:
        logger.error(f"Connection error creating expense: {ce}")
        raise _database_unavailable(ce)

@router.put("/expenses/{expense_id}", response_model=Expense, summary="Update Expense", description="Overwrites amount, category, description and date of an existing expense.")
async def update_expense(expense_id: str, changes: Expense, collection: ExpensesCollectionDep) -> Expense:
    logger.info(f"PUT /expenses/{expense_id} endpoint called.")
    try:
        return await expenses_service.update_expense(collection, expense_id, changes)
    except ConnectionError as ce:
        logger.error(f"Connection error updating expense {expense_id}: {ce}")
        raise _database_unavailable(ce)

@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Expense")
async def delete_expense(expense_id: str, collection: ExpensesCollectionDep) -> Response:
    logger.info(f"DELETE /expenses/{expense_id} endpoint called.")
    try:
        await expenses_service.delete_expense(collection, expense_id)
    except ConnectionError as ce:
        logger.error(f"Connection error deleting expense {expense_id}: {ce}")
        raise _database_unavailable(ce)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.delete("/expenses", status_code=status.HTTP_204_NO_CONTENT, summary="Delete All Expenses", description="Deletes all expense records from the database. Use with caution!")
async def delete_all_expenses(collection: ExpensesCollectionDep) -> Response:
    logger.warning("DELETE /expenses endpoint called. This will clear the database.")
    try:
        deleted_count = await expenses_service.delete_all_expenses(collection)
    except ConnectionError as ce:
        logger.error(f"ConnectionError deleting all expenses: {ce}")
        raise _database_unavailable(ce)
    logger.info(f"Delete all expenses removed {deleted_count} records.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/health", tags=["system"], summary="Health Check")
async def healthcheck(request: Request) -> dict:
    collection = request.state.expenses_collection
    database_up = collection is not None and await expenses_service.ping(collection)
    return {"status": "ok", "database": "up" if database_up else "down"}
