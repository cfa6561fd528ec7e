from datetime import date

from models.expense import Expense
from utils.csv_export import export_filename, render_expenses_csv


def test_empty_export_has_only_header():
    assert render_expenses_csv([]) == "id,amount,category,date,description\n"


def test_missing_values_become_empty_cells():
    csv_text = render_expenses_csv([Expense(id="abc", amount=3.5)])
    assert csv_text.splitlines()[1] == "abc,3.5,,,"


def test_export_filename_uses_date():
    assert export_filename(date(2024, 12, 31)) == "expenses-2024-12-31.csv"
