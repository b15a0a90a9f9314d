"""
Settlement computations for MeetSplit

Three stages run in order over one meeting snapshot:
contributions -> fund allocation -> netting, fund payouts and peer transfers.
Everything here is pure; inputs are never mutated.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from config import MONEY_TOLERANCE
from errors import (
    AlreadySettledError,
    DuplicateParticipantError,
    InvalidExpenseError,
    InvalidSplitError,
    SettlementError,
    UnknownParticipantError,
)
from models import (
    MEETING_CONTRIBUTION,
    SPLIT_CUSTOM,
    SPLIT_EQUALLY,
    Contribution,
    Expense,
    FundAllocation,
    FundConfig,
    FundPayout,
    FundTransaction,
    Meeting,
    Participant,
    ParticipantBalance,
    SettlementResult,
    Transfer,
)
from utils import round_money, today_str

logger = logging.getLogger(__name__)


def validate_expense(e: Expense, participant_ids: Iterable[str], index: Optional[int] = None) -> None:
    """Raise a SettlementError subclass if the expense cannot be settled"""
    known = set(participant_ids)
    where = {"expense_id": e.id, "expense_index": index}

    if not e.total_amount > 0:
        raise InvalidExpenseError(f"total amount must be positive, got {e.total_amount}", **where)
    if e.paid_by_id not in known:
        raise UnknownParticipantError(e.paid_by_id, "payer", **where)

    if e.split_type == SPLIT_EQUALLY:
        if not e.split_among_ids:
            raise InvalidSplitError("equal split has no participants", **where)
        for pid in e.split_among_ids:
            if pid not in known:
                raise UnknownParticipantError(pid, "split", **where)
    elif e.split_type == SPLIT_CUSTOM:
        total = 0.0
        for s in e.custom_splits:
            if s.participant_id not in known:
                raise UnknownParticipantError(s.participant_id, "split", **where)
            if s.amount < 0:
                raise InvalidSplitError(
                    f"custom amount for {s.participant_id!r} is negative ({s.amount})", **where)
            total += s.amount
        # tiny slack so 0.01 off on float input still passes
        if abs(total - e.total_amount) > MONEY_TOLERANCE + 1e-9:
            raise InvalidSplitError(
                f"custom splits sum to {total:.2f}, expected {e.total_amount:.2f}", **where)
    else:
        raise InvalidExpenseError(f"unknown split type {e.split_type!r}", **where)


def expense_shares(e: Expense) -> Dict[str, float]:
    """Amount each participant owes for one (validated) expense"""
    shares: Dict[str, float] = {}
    if e.split_type == SPLIT_EQUALLY:
        share = float(e.total_amount) / len(e.split_among_ids)
        for pid in e.split_among_ids:
            shares[pid] = shares.get(pid, 0.0) + share
    else:
        for s in e.custom_splits:
            shares[s.participant_id] = shares.get(s.participant_id, 0.0) + float(s.amount)
    return shares


def compute_contributions(
    participants: List[Participant],
    expenses: List[Expense],
) -> Dict[str, Contribution]:
    """
    Sum what every participant paid and what they owe across all expenses.
    All expenses are validated before any sums are taken.
    """
    ids = [p.id for p in participants]
    seen = set()
    for pid in ids:
        if pid in seen:
            logger.warning("rejected participant list: duplicate id %r", pid)
            raise DuplicateParticipantError(pid)
        seen.add(pid)
    for i, e in enumerate(expenses):
        try:
            validate_expense(e, ids, i)
        except SettlementError as ex:
            logger.warning("rejected expense: %s", ex)
            raise

    contributions = {pid: Contribution() for pid in ids}
    for e in expenses:
        contributions[e.paid_by_id].total_paid += float(e.total_amount)
        for pid, share in expense_shares(e).items():
            contributions[pid].owed_amount += share

    logger.debug("contributions over %d expenses: %s", len(expenses), contributions)
    return contributions


def allocate_fund(
    contributions: Dict[str, Contribution],
    fund: Optional[FundConfig],
    participants: List[Participant],
) -> FundAllocation:
    """
    Offset eligible participants' obligations with the capped fund.

    The fund never covers more than eligible participants owe in total, and
    whatever remains is split evenly across them regardless of their
    original shares.
    """
    out = {pid: Contribution(c.total_paid, c.owed_amount) for pid, c in contributions.items()}
    excluded = fund.excluded_participant_ids if fund is not None else set()
    eligible = [p.id for p in participants if p.id not in excluded]
    cap = float(fund.cap_amount) if fund is not None else 0.0

    if fund is None or not fund.enabled or cap <= 0 or not eligible:
        return FundAllocation(out, fund_used=0.0, fund_left=max(cap, 0.0), eligible_ids=eligible)

    obligation_total = sum(out[pid].owed_amount for pid in eligible)
    fund_used = min(cap, obligation_total)
    residual_each = (obligation_total - fund_used) / len(eligible)
    for pid in eligible:
        out[pid].owed_amount = residual_each

    logger.debug("fund used %.2f of cap %.2f over %d eligible (obligation %.2f)",
                 fund_used, cap, len(eligible), obligation_total)
    return FundAllocation(out, fund_used=fund_used, fund_left=cap - fund_used, eligible_ids=eligible)


def net_balances(contributions: Dict[str, Contribution]) -> Dict[str, float]:
    """paid - owed per participant, rounded to cents; positive -> should receive"""
    return {pid: round_money(c.total_paid - c.owed_amount) for pid, c in contributions.items()}


def plan_fund_payouts(
    net: Dict[str, float],
    fund_used: float,
    eps: float = MONEY_TOLERANCE,
) -> Tuple[List[FundPayout], Dict[str, float]]:
    """
    Pay the fund out to the largest creditors first.
    Returns (payouts, balances left after the payouts).
    """
    remaining = dict(net)
    payouts = []
    fund_remaining = float(fund_used)
    # sorted() is stable, so equal balances keep participant order
    for pid, _ in sorted(net.items(), key=lambda kv: kv[1], reverse=True):
        if fund_remaining <= eps:
            break
        balance = remaining[pid]
        if balance <= eps:
            break
        amount = min(balance, fund_remaining)
        payouts.append(FundPayout(pid, round_money(amount)))
        remaining[pid] = balance - amount
        fund_remaining -= amount
    return payouts, remaining


def compute_transfers(net: Dict[str, float], eps: float = MONEY_TOLERANCE) -> List[Transfer]:
    """
    Greedy settlement: largest sender pays largest receiver until one side is
    settled, then move on. net>0 receiver; net<0 sender.
    """
    receivers = [[p, v] for p, v in net.items() if v > eps]
    senders = [[p, -v] for p, v in net.items() if v < -eps]
    receivers.sort(key=lambda x: x[1], reverse=True)
    senders.sort(key=lambda x: x[1], reverse=True)

    transfers = []
    i = j = 0
    while i < len(senders) and j < len(receivers):
        sender, receiver = senders[i], receivers[j]
        amount = min(sender[1], receiver[1])
        transfers.append(Transfer(sender[0], receiver[0], round_money(amount)))
        sender[1] -= amount
        receiver[1] -= amount
        if sender[1] <= eps:
            i += 1
        if receiver[1] <= eps:
            j += 1
    return transfers


def compute_settlement(
    participants: List[Participant],
    expenses: List[Expense],
    fund: Optional[FundConfig] = None,
) -> SettlementResult:
    """Settle one meeting: balances, fund payouts and peer transfers"""
    contributions = compute_contributions(participants, expenses)
    allocation = allocate_fund(contributions, fund, participants)
    net = net_balances(allocation.contributions)
    payouts, remaining = plan_fund_payouts(net, allocation.fund_used)
    transfers = compute_transfers(remaining)

    per_participant = {
        pid: ParticipantBalance(
            total_paid=round_money(c.total_paid),
            owed_amount=round_money(c.owed_amount),
            net_balance=net[pid],
        )
        for pid, c in allocation.contributions.items()
    }
    logger.debug("settled %d participants: %d payouts, %d transfers",
                 len(per_participant), len(payouts), len(transfers))
    return SettlementResult(
        per_participant=per_participant,
        fund_payouts=payouts,
        transfers=transfers,
        fund_used=round_money(allocation.fund_used),
        fund_left=round_money(allocation.fund_left),
    )


def settle_meeting(meeting: Meeting) -> SettlementResult:
    return compute_settlement(meeting.participants, meeting.expenses, meeting.fund)


def apply_settlement(result: SettlementResult) -> Dict[str, float]:
    """Balances left once every payout and transfer has been made"""
    left = {pid: b.net_balance for pid, b in result.per_participant.items()}
    for p in result.fund_payouts:
        left[p.participant_id] -= p.amount
    for t in result.transfers:
        left[t.from_participant_id] += t.amount
        left[t.to_participant_id] -= t.amount
    return left


def describe_fund(fund: Optional[FundConfig], total_spent: float, fund_used: float) -> str:
    """One-line description of how the reserve fund applies to a meeting"""
    if fund is None or not fund.enabled:
        return "Reserve fund not used"
    if fund.cap_amount <= 0:
        return "Reserve fund enabled, but no amount set"
    if total_spent <= 0:
        return "No expenses; reserve fund not drawn"
    return f"Reserve fund used: {fund_used:,.2f} of {fund.cap_amount:,.2f}"


def compute_meeting_summary(meeting: Meeting, result: SettlementResult) -> dict:
    """
    Headline figures for one meeting.
    Returns dict with total_spent, per_person_cost, fund_used, fund_left,
    eligible_count, cost_per_eligible, fund_description.
    """
    total_spent = sum(float(e.total_amount) for e in meeting.expenses)
    n = len(meeting.participants)
    excluded = meeting.fund.excluded_participant_ids if meeting.fund else set()
    eligible = [p.id for p in meeting.participants if p.id not in excluded]

    cost_per_eligible = None
    if result.fund_used > 0 and eligible:
        cost_per_eligible = result.per_participant[eligible[0]].owed_amount

    return {
        "total_spent": round_money(total_spent),
        "per_person_cost": round_money(total_spent / n) if n else 0.0,
        "fund_used": result.fund_used,
        "fund_left": result.fund_left,
        "eligible_count": len(eligible),
        "cost_per_eligible": cost_per_eligible,
        "fund_description": describe_fund(meeting.fund, total_spent, result.fund_used),
    }


def build_fund_deduction(
    meeting: Meeting,
    result: SettlementResult,
    existing: Iterable[FundTransaction] = (),
) -> Optional[FundTransaction]:
    """
    Reserve fund ledger entry for what this meeting drew, if anything.
    Returns None when nothing was drawn or an entry for the same meeting and
    amount is already among the existing transactions.
    """
    if result.fund_used <= MONEY_TOLERANCE:
        return None
    for tx in existing:
        if (tx.meeting_id == meeting.id and tx.type == MEETING_CONTRIBUTION
                and abs(tx.amount + result.fund_used) < MONEY_TOLERANCE):
            logger.info("fund withdrawal for meeting %r already recorded", meeting.id)
            return None
    return FundTransaction(
        meeting_id=meeting.id,
        amount=-result.fund_used,
        description=f"Meeting ({meeting.name}) reserve fund usage",
        date=meeting.date or today_str(),
    )


def finalize_settlement(
    meeting: Meeting,
    result: SettlementResult,
    existing: Iterable[FundTransaction] = (),
) -> Tuple[Meeting, Optional[FundTransaction]]:
    """
    Mark the meeting settled and build its fund withdrawal.
    Raises AlreadySettledError for a meeting that was finalized before.
    """
    if meeting.is_settled:
        raise AlreadySettledError(f"meeting {meeting.id!r} settlement is already finalized")
    deduction = build_fund_deduction(meeting, result, existing)
    return replace(meeting, is_settled=True), deduction
