"""Pydantic models for Expense data"""
from pydantic import BaseModel, Field
from datetime import date as Date
from typing import List, Optional

class Expense(BaseModel):
    """
    Represents a single tracked expense.
    """
    id: Optional[str] = None
    amount: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    date: Optional[Date] = None

class CategoryTotal(BaseModel):
    category: str
    total: float = 0.0
    count: int = 0

class ExpenseSummary(BaseModel):
    """Aggregate view used by the dashboard: overall total plus per-category totals."""
    total: float = 0.0
    count: int = 0
    by_category: List[CategoryTotal] = Field(default_factory=list)
