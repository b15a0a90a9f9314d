"""
MeetSplit command line
- Settle one meeting from a JSON snapshot: balances, reserve fund payouts, transfers.
- Optionally export the result to Excel/CSV.

Run:
  meetsplit meeting.json
  meetsplit meeting.json --cap 40000 --excel settlement.xlsx
  meetsplit meeting.json --import-expenses receipts.csv --save
  meetsplit meeting.json --finalize
"""
from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from computations import build_fund_deduction, compute_meeting_summary, finalize_settlement, settle_meeting
from config import CURRENCY, LOG_LEVEL, MONEY_TOLERANCE, load_meeting, save_meeting
from csv_handler import export_expenses_to_csv, export_settlement_to_csv, import_expenses_from_csv
from errors import SettlementError
from excel_export import export_excel
from models import FundConfig, Meeting, SettlementResult
from utils import safe_float

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meetsplit",
        description="Settle a meeting's shared expenses, optionally using the reserve fund",
    )
    parser.add_argument("meeting", help="Meeting snapshot (JSON)")
    parser.add_argument("--roster", help="Friend roster JSON used to resolve bare participant ids")
    parser.add_argument("--import-expenses", metavar="CSV", help="Append expenses from a CSV file")
    parser.add_argument("--cap", help="Use the reserve fund with this cap")
    parser.add_argument("--no-fund", action="store_true", help="Ignore the reserve fund")
    parser.add_argument("--excel", metavar="PATH", help="Write the settlement to an Excel workbook")
    parser.add_argument("--csv", metavar="PATH", help="Write the settlement to CSV")
    parser.add_argument("--export-expenses", metavar="PATH", help="Write the expenses to CSV")
    parser.add_argument("--save", action="store_true", help="Write the (modified) meeting back to its file")
    parser.add_argument("--finalize", action="store_true",
                        help="Mark the meeting settled, record its fund withdrawal, and save it")
    parser.add_argument("--log-level", default=LOG_LEVEL, help=f"Logging level (default: {LOG_LEVEL})")
    return parser


def _apply_fund_options(meeting: Meeting, args) -> Meeting:
    if args.no_fund:
        return replace(meeting, fund=None)
    if args.cap is not None:
        cap = safe_float(args.cap, -1.0)
        if cap < 0:
            raise SystemExit(f"meetsplit: invalid --cap {args.cap!r}")
        excluded = meeting.fund.excluded_participant_ids if meeting.fund else set()
        return replace(meeting, fund=FundConfig(enabled=True, cap_amount=cap, excluded_participant_ids=set(excluded)))
    return meeting


def print_settlement(meeting: Meeting, result: SettlementResult, currency: str = CURRENCY) -> None:
    name = meeting.participant_name
    summary = compute_meeting_summary(meeting, result)

    print(f"{meeting.name} ({meeting.date})")
    print(f"  Total spent: {summary['total_spent']:,.2f} {currency}")
    print(f"  Per person before fund: {summary['per_person_cost']:,.2f} {currency}")
    print(f"  {summary['fund_description']}")
    if summary["cost_per_eligible"] is not None:
        print(f"  Per eligible person after fund: {summary['cost_per_eligible']:,.2f} {currency}")

    print("\nBalances:")
    for pid, b in result.per_participant.items():
        state = "settled"
        if b.net_balance > MONEY_TOLERANCE:
            state = "receives"
        elif b.net_balance < -MONEY_TOLERANCE:
            state = "pays"
        print(f"  {name(pid)[:24]:24} paid {b.total_paid:>12,.2f}  owes {b.owed_amount:>12,.2f}"
              f"  net {b.net_balance:>12,.2f}  {state}")

    if result.fund_payouts:
        print("\nFund payouts:")
        for p in result.fund_payouts:
            print(f"  fund -> {name(p.participant_id)}: {p.amount:,.2f} {currency}")

    print("\nTransfers:")
    if not result.transfers:
        print("  nothing to transfer")
    for t in result.transfers:
        print(f"  {name(t.from_participant_id)} -> {name(t.to_participant_id)}: {t.amount:,.2f} {currency}")


def _read_snapshot(args) -> Meeting:
    """Load the meeting and any imported expenses; raises ValueError on bad data"""
    try:
        meeting = load_meeting(args.meeting, args.roster)
        imported = import_expenses_from_csv(args.import_expenses) if args.import_expenses else []
    except KeyError as ex:
        raise ValueError(f"missing field {ex}") from ex
    except TypeError as ex:
        raise ValueError(str(ex)) from ex
    if imported:
        logger.info("imported %d expenses from %s", len(imported), args.import_expenses)
        # changed expenses reopen a finalized meeting
        meeting = replace(meeting, expenses=meeting.expenses + imported, is_settled=False)
    return meeting


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    try:
        meeting = _read_snapshot(args)
    except ValueError as ex:
        print(f"Settlement unavailable for {args.meeting}: unreadable meeting data ({ex})", file=sys.stderr)
        return 1
    meeting = _apply_fund_options(meeting, args)

    try:
        result = settle_meeting(meeting)
        if args.finalize:
            meeting, deduction = finalize_settlement(meeting, result)
        elif meeting.is_settled:
            deduction = None
        else:
            deduction = build_fund_deduction(meeting, result)
    except SettlementError as ex:
        print(f"Settlement unavailable for {meeting.name or meeting.id}: {ex}", file=sys.stderr)
        return 1

    print_settlement(meeting, result)

    if deduction is not None:
        pending = "" if args.finalize else " (pending; finalize to record)"
        print(f"\nReserve fund ledger entry: {deduction.amount:,.2f} on {deduction.date}"
              f" ({deduction.description}){pending}")
    if args.finalize:
        print("\nSettlement finalized.")
    elif meeting.is_settled:
        print("\nSettlement already finalized; no new fund entry.")

    if args.excel:
        export_excel(meeting, result, args.excel, CURRENCY)
    if args.csv:
        export_settlement_to_csv(result, meeting.participants, args.csv)
    if args.export_expenses:
        export_expenses_to_csv(meeting.expenses, args.export_expenses)
    if args.save or args.finalize:
        save_meeting(meeting, args.meeting)
    return 0


if __name__ == "__main__":
    sys.exit(main())
