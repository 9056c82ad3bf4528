"""
Export service for expense data.

Provides functionality to export expenses to XLSX and CSV formats.
"""

import csv
import io
from datetime import date, datetime
from enum import Enum
from typing import Optional, cast

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from pocketledger.config import ALL_CATEGORIES, MAX_EXPORT_ENTRIES
from pocketledger.db import Expense, ExpenseBook

HEADERS = [
    "ID",
    "Date",
    "Category",
    "Note",
    "Amount",
    "Currency",
    "Amount (USD)",
    "Wallet",
]


class ExportFormat(str, Enum):
    """Supported export formats."""

    CSV = "csv"
    XLSX = "xlsx"


class ExportService:
    """Service for exporting expenses to various formats."""

    def __init__(self, book: ExpenseBook):
        """
        Initialize the export service.

        Args:
            book: Expense book to read from
        """
        self.book = book

    def export_to_csv(
        self,
        category: str = ALL_CATEGORIES,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> io.BytesIO:
        """
        Export expenses to CSV format.

        Args:
            category: Category filter, "All" for every category
            start_date: Optional start date filter
            end_date: Optional end date filter

        Returns:
            BytesIO buffer containing the CSV data
        """
        expenses = self._get_expenses(category, start_date, end_date)
        wallet_names = self._wallet_names()

        buffer = io.BytesIO()
        text_buffer = io.StringIO()

        writer = csv.writer(text_buffer)
        writer.writerow(HEADERS)
        for expense in expenses:
            writer.writerow(self._row(expense, wallet_names))

        buffer.write(text_buffer.getvalue().encode("utf-8-sig"))  # BOM for Excel
        buffer.seek(0)

        return buffer

    def export_to_xlsx(
        self,
        category: str = ALL_CATEGORIES,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> io.BytesIO:
        """
        Export expenses to XLSX format with formatting and a summary sheet.

        Args:
            category: Category filter, "All" for every category
            start_date: Optional start date filter
            end_date: Optional end date filter

        Returns:
            BytesIO buffer containing the XLSX data
        """
        expenses = self._get_expenses(category, start_date, end_date)
        wallet_names = self._wallet_names()

        wb = Workbook()
        ws = cast(Worksheet, wb.active)
        ws.title = "Expenses"

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(
            start_color="4472C4", end_color="4472C4", fill_type="solid"
        )
        orphan_fill = PatternFill(
            start_color="FFC7CE", end_color="FFC7CE", fill_type="solid"
        )

        for col, header in enumerate(HEADERS, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center")

        for row_idx, expense in enumerate(expenses, 2):
            for col, value in enumerate(self._row(expense, wallet_names), 1):
                ws.cell(row=row_idx, column=col, value=value)

            # Highlight expenses not anchored to a wallet
            if expense.wallet_id is None:
                for col in range(1, len(HEADERS) + 1):
                    ws.cell(row=row_idx, column=col).fill = orphan_fill

        for row in range(2, len(expenses) + 2):
            ws.cell(row=row, column=5).number_format = "#,##0.00"
            ws.cell(row=row, column=7).number_format = "#,##0.00"

        column_widths = [8, 12, 15, 40, 15, 10, 15, 20]
        for col, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width

        ws.freeze_panes = "A2"

        self._add_summary_sheet(wb, expenses)

        buffer = io.BytesIO()
        wb.save(buffer)
        buffer.seek(0)

        return buffer

    def _add_summary_sheet(self, wb: Workbook, expenses: list[Expense]):
        """Add a per-category summary sheet to the workbook."""
        ws = wb.create_sheet(title="Summary")

        header_font = Font(bold=True)
        title_font = Font(bold=True, size=14)

        ws.cell(row=1, column=1, value="Expense Summary").font = title_font
        ws.cell(
            row=2,
            column=1,
            value=f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}",
        )

        summary_start = 4
        ws.cell(row=summary_start, column=1, value="Category").font = header_font
        ws.cell(row=summary_start, column=2, value="Count").font = header_font
        ws.cell(row=summary_start, column=3, value="Total (USD)").font = header_font

        by_category: dict[str, list[Expense]] = {}
        for expense in expenses:
            by_category.setdefault(expense.category, []).append(expense)

        row = summary_start
        for category in sorted(by_category):
            items = by_category[category]
            row += 1
            ws.cell(row=row, column=1, value=category)
            ws.cell(row=row, column=2, value=len(items))
            ws.cell(
                row=row,
                column=3,
                value=round(sum(e.normalized_amount for e in items), 2),
            )

        row += 2
        ws.cell(row=row, column=1, value="Total").font = header_font
        ws.cell(row=row, column=2, value=len(expenses))
        ws.cell(
            row=row,
            column=3,
            value=round(sum(e.normalized_amount for e in expenses), 2),
        )

        for r in range(summary_start + 1, row + 1):
            ws.cell(row=r, column=3).number_format = "#,##0.00"

        ws.column_dimensions["A"].width = 15
        ws.column_dimensions["B"].width = 10
        ws.column_dimensions["C"].width = 18

    def _row(self, expense: Expense, wallet_names: dict[int, str]) -> list:
        wallet = wallet_names.get(expense.wallet_id, "") if expense.wallet_id else ""
        return [
            expense.id,
            expense.date,
            expense.category,
            expense.note,
            expense.amount,
            expense.currency,
            expense.normalized_amount,
            wallet,
        ]

    def _get_expenses(
        self,
        category: str,
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> list[Expense]:
        return self.book.reports.filtered_expenses(
            category=category,
            start_date=start_date,
            end_date=end_date,
            limit=MAX_EXPORT_ENTRIES,
        ).unwrap()

    def _wallet_names(self) -> dict[int, str]:
        wallets = self.book.reports.fetch_wallets().unwrap()
        return {w.id: w.name for w in wallets}

    def get_filename(
        self,
        format: ExportFormat,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> str:
        """
        Generate a filename for the export.

        Args:
            format: Export format
            start_date: Optional start date
            end_date: Optional end date

        Returns:
            Suggested filename
        """
        date_str = datetime.now().strftime("%Y%m%d")

        if start_date and end_date:
            date_range = (
                f"_{start_date.strftime('%Y%m%d')}-{end_date.strftime('%Y%m%d')}"
            )
        else:
            date_range = ""

        return f"pocketledger_expenses_{date_str}{date_range}.{format.value}"
