"""CSV rendering for expense exports."""
import csv
import io
from datetime import date
from typing import Iterable, Optional

from models.expense import Expense

CSV_COLUMNS = ['id', 'amount', 'category', 'date', 'description']

def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"expenses-{today.isoformat()}.csv"

def render_expenses_csv(expenses: Iterable[Expense]) -> str:
    """Renders expenses as CSV with a header row. Missing values become empty cells."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(CSV_COLUMNS)
    for expense in expenses:
        row = expense.model_dump(mode='json')
        writer.writerow(['' if row[column] is None else row[column] for column in CSV_COLUMNS])
    return buffer.getvalue()
