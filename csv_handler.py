"""
CSV export and import functionality for MeetSplit
"""
from __future__ import annotations
import csv
from typing import List

from models import CustomSplit, Expense, Participant, SettlementResult

EXPENSE_COLUMNS = ['id', 'description', 'paid_by', 'total_amount', 'split_type', 'split_among', 'custom_splits']


def _encode_custom_splits(splits: List[CustomSplit]) -> str:
    return ';'.join(f"{s.participant_id}:{s.amount}" for s in splits)


def _decode_custom_splits(raw: str) -> List[CustomSplit]:
    splits = []
    for pair in raw.split(';'):
        if ':' in pair:
            # ids may contain ':', amounts never do
            k, v = pair.rsplit(':', 1)
            splits.append(CustomSplit(k.strip(), float(v.strip())))
    return splits


def export_expenses_to_csv(expenses: List[Expense], filepath: str) -> None:
    """
    Export expenses list to CSV file
    split_among is ';'-joined ids, custom_splits is 'id:amount;id:amount'
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(EXPENSE_COLUMNS)
        for e in expenses:
            writer.writerow([
                e.id,
                e.description,
                e.paid_by_id,
                e.total_amount,
                e.split_type,
                ';'.join(e.split_among_ids),
                _encode_custom_splits(e.custom_splits),
            ])


def import_expenses_from_csv(filepath: str) -> List[Expense]:
    """
    Import expenses list from CSV file
    Returns list of Expense objects; validation is left to the settlement step
    """
    expenses = []
    with open(filepath, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for row in reader:
            among = [i.strip() for i in (row.get('split_among') or '').split(';') if i.strip()]
            expenses.append(Expense(
                id=row.get('id', ''),
                description=row.get('description', ''),
                paid_by_id=row['paid_by'],
                total_amount=float(row['total_amount']),
                split_type=(row.get('split_type') or 'equally').strip(),
                split_among_ids=among,
                custom_splits=_decode_custom_splits(row.get('custom_splits') or ''),
            ))
    return expenses


def export_settlement_to_csv(result: SettlementResult, participants: List[Participant], filepath: str) -> None:
    """
    Export a settlement as rows of kind balance / fund_payout / transfer.
    Columns: kind, from, to, total_paid, owed_amount, amount
    """
    names = {p.id: p.name for p in participants}
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['kind', 'from', 'to', 'total_paid', 'owed_amount', 'amount'])
        for pid, b in result.per_participant.items():
            writer.writerow(['balance', names.get(pid, pid), '', b.total_paid, b.owed_amount, b.net_balance])
        for p in result.fund_payouts:
            writer.writerow(['fund_payout', 'fund', names.get(p.participant_id, p.participant_id), '', '', p.amount])
        for t in result.transfers:
            writer.writerow([
                'transfer',
                names.get(t.from_participant_id, t.from_participant_id),
                names.get(t.to_participant_id, t.to_participant_id),
                '', '', t.amount,
            ])
