"""
Excel export functionality for MeetSplit
"""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from computations import compute_meeting_summary
from models import SPLIT_CUSTOM, Meeting, SettlementResult

logger = logging.getLogger(__name__)

MONEY_FORMAT = "#,##0.00"


def _add_table(wb: Workbook, title: str, headers: list, rows: Iterable[list], money_cols: Iterable[int] = ()):
    """Create a sheet with a styled, frozen header row followed by rows"""
    ws = wb.create_sheet(title)
    ws.append(headers)
    thin = Side(style="thin", color="A0A0A0")
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill("solid", fgColor="4F81BD")
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = Border(left=thin, right=thin, top=thin, bottom=thin)
    ws.freeze_panes = "A2"

    for row in rows:
        ws.append(row)
    for col in money_cols:
        for r in range(2, ws.max_row + 1):
            ws.cell(r, col).number_format = MONEY_FORMAT

    _fit_columns(ws)
    return ws


def _fit_columns(ws, min_width: int = 10, max_width: int = 45) -> None:
    for idx, column in enumerate(ws.iter_cols(), start=1):
        longest = max((len(str(c.value)) for c in column if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(idx)].width = max(min_width, min(max_width, longest + 2))


def export_excel(meeting: Meeting, result: SettlementResult, filepath: str, currency: Optional[str] = None) -> None:
    """
    Export a meeting settlement to Excel with sheets:
    Expenses, Balances, Fund Payouts, Transfers, Summary
    """
    wb = Workbook()
    wb.remove(wb.active)
    name = meeting.participant_name

    expense_rows = []
    for e in meeting.expenses:
        if e.split_type == SPLIT_CUSTOM:
            split = ", ".join(f"{name(s.participant_id)} {s.amount:,.2f}" for s in e.custom_splits)
        else:
            split = ", ".join(name(i) for i in e.split_among_ids)
        expense_rows.append([e.description or e.id, name(e.paid_by_id), e.total_amount, e.split_type, split])
    ws = _add_table(wb, "Expenses", ["Description", "Paid by", "Amount", "Split", "Shared by"],
                    expense_rows, money_cols=[3])
    if expense_rows:
        ws.append(["TOTAL", "", f"=SUM(C2:C{ws.max_row})"])
        ws.cell(ws.max_row, 1).font = Font(bold=True)
        ws.cell(ws.max_row, 3).number_format = MONEY_FORMAT

    excluded = meeting.fund.excluded_participant_ids if meeting.fund else set()
    _add_table(
        wb, "Balances",
        ["Participant", "Paid", "Owed (after fund)", "Net", "Fund eligible"],
        [[name(pid), b.total_paid, b.owed_amount, b.net_balance, "no" if pid in excluded else "yes"]
         for pid, b in result.per_participant.items()],
        money_cols=[2, 3, 4],
    )
    _add_table(
        wb, "Fund Payouts", ["To", "Amount"],
        [[name(p.participant_id), p.amount] for p in result.fund_payouts],
        money_cols=[2],
    )
    _add_table(
        wb, "Transfers", ["From (Debtor)", "To (Creditor)", "Amount"],
        [[name(t.from_participant_id), name(t.to_participant_id), t.amount] for t in result.transfers],
        money_cols=[3],
    )

    summary = compute_meeting_summary(meeting, result)
    _add_table(
        wb, "Summary", ["Item", "Value"],
        [
            ["Meeting", meeting.name],
            ["Date", meeting.date],
            ["Currency", currency or ""],
            ["Total spent", summary["total_spent"]],
            ["Per person (before fund)", summary["per_person_cost"]],
            ["Fund used", summary["fund_used"]],
            ["Fund left", summary["fund_left"]],
            ["Per eligible person (after fund)", summary["cost_per_eligible"]],
            ["Fund", summary["fund_description"]],
        ],
        money_cols=[2],
    )

    wb.save(filepath)
    logger.info("exported settlement for meeting %r to %s", meeting.id, filepath)
