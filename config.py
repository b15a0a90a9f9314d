"""
Configuration and data loading/saving for MeetSplit
"""
from __future__ import annotations
import json
import logging
import os
from typing import Dict, List, Optional

from models import SPLIT_EQUALLY, CustomSplit, Expense, FundConfig, Meeting, Participant
from utils import app_dir, parse_date, today_str

logger = logging.getLogger(__name__)

# Balances within this many currency units of zero count as settled.
MONEY_TOLERANCE = 0.01

LOG_LEVEL = os.getenv("MEETSPLIT_LOG_LEVEL", "WARNING").upper()
CURRENCY = os.getenv("MEETSPLIT_CURRENCY", "KRW")


def load_participants(path: str) -> List[Participant]:
    """Load friend roster from JSON file"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return []
    return [_participant_from_dict(p) for p in data.get("participants", [])]


def default_roster_path() -> str:
    return os.path.join(app_dir(), "participants.json")


def _participant_from_dict(d: dict) -> Participant:
    return Participant(
        id=str(d["id"]),
        name=str(d.get("name") or d["id"]),
        temporary=bool(d.get("temporary", False)),
    )


def _resolve_participants(raw: list, roster: Dict[str, Participant]) -> List[Participant]:
    """Participants may be full objects or bare ids looked up in the roster"""
    out = []
    for item in raw:
        if isinstance(item, dict):
            out.append(_participant_from_dict(item))
        elif item in roster:
            out.append(roster[item])
        else:
            logger.warning("participant %r not in roster; using id as name", item)
            out.append(Participant(id=str(item), name=str(item)))
    return out


def expense_to_dict(e: Expense) -> dict:
    return {
        "id": e.id,
        "description": e.description,
        "paid_by_id": e.paid_by_id,
        "total_amount": e.total_amount,
        "split_type": e.split_type,
        "split_among_ids": list(e.split_among_ids),
        "custom_splits": [
            {"participant_id": s.participant_id, "amount": s.amount} for s in e.custom_splits
        ],
    }


def dict_to_expense(d: dict) -> Expense:
    return Expense(
        id=str(d.get("id", "")),
        description=d.get("description", ""),
        paid_by_id=str(d["paid_by_id"]),
        total_amount=float(d["total_amount"]),
        split_type=d.get("split_type", SPLIT_EQUALLY),
        split_among_ids=[str(i) for i in d.get("split_among_ids", [])],
        custom_splits=[
            CustomSplit(str(s["participant_id"]), float(s["amount"]))
            for s in d.get("custom_splits", [])
        ],
    )


def meeting_to_dict(meeting: Meeting) -> dict:
    """Convert Meeting object to dictionary for JSON serialization"""
    d = {
        "version": meeting.version,
        "id": meeting.id,
        "name": meeting.name,
        "date": meeting.date,
        "is_settled": meeting.is_settled,
        "participants": [
            {"id": p.id, "name": p.name, "temporary": p.temporary} for p in meeting.participants
        ],
        "expenses": [expense_to_dict(e) for e in meeting.expenses],
    }
    if meeting.fund is not None:
        d["fund"] = {
            "enabled": meeting.fund.enabled,
            "cap_amount": meeting.fund.cap_amount,
            "excluded_participant_ids": sorted(meeting.fund.excluded_participant_ids),
        }
    return d


def dict_to_meeting(d: dict, roster: Optional[List[Participant]] = None) -> Meeting:
    """Convert dictionary from JSON to Meeting object"""
    by_id = {p.id: p for p in (roster or [])}
    date_str = d.get("date") or today_str()
    parse_date(date_str)  # reject malformed dates early

    fund = None
    raw_fund = d.get("fund")
    if raw_fund is not None:
        fund = FundConfig(
            enabled=bool(raw_fund.get("enabled", False)),
            cap_amount=float(raw_fund.get("cap_amount", 0.0)),
            excluded_participant_ids={str(i) for i in raw_fund.get("excluded_participant_ids", [])},
        )

    return Meeting(
        version=d.get("version", 1),
        id=str(d.get("id", "")),
        name=d.get("name", ""),
        date=date_str,
        participants=_resolve_participants(d.get("participants", []), by_id),
        expenses=[dict_to_expense(e) for e in d.get("expenses", [])],
        fund=fund,
        is_settled=bool(d.get("is_settled", False)),
    )


def load_meeting(path: str, roster_path: Optional[str] = None) -> Meeting:
    """Load a meeting snapshot, resolving bare participant ids against the roster"""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    roster = load_participants(roster_path or default_roster_path())
    meeting = dict_to_meeting(data, roster)
    logger.debug("loaded meeting %r: %d participants, %d expenses",
                 meeting.id, len(meeting.participants), len(meeting.expenses))
    return meeting


def save_meeting(meeting: Meeting, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(meeting_to_dict(meeting), f, ensure_ascii=False, indent=2)
