"""
Data models for MeetSplit
"""
from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

SPLIT_EQUALLY = "equally"
SPLIT_CUSTOM = "custom"
MEETING_CONTRIBUTION = "meeting_contribution"  # fund ledger withdrawal for a meeting


@dataclass(frozen=True)
class Participant:
    """Friend or ad-hoc guest taking part in one meeting"""
    id: str
    name: str
    temporary: bool = False  # ad-hoc guest, not in the friend roster


def new_temporary_participant(name: str) -> Participant:
    """Create an ad-hoc guest with its own local id"""
    return Participant(id=f"tmp-{uuid.uuid4().hex}", name=name, temporary=True)


@dataclass
class CustomSplit:
    """Explicit amount owed by one participant for a custom expense"""
    participant_id: str
    amount: float


@dataclass
class Expense:
    """Single cost recorded within a meeting"""
    paid_by_id: str
    total_amount: float
    split_type: str = SPLIT_EQUALLY
    split_among_ids: List[str] = field(default_factory=list)  # used when equally
    custom_splits: List[CustomSplit] = field(default_factory=list)  # used when custom
    id: str = ""
    description: str = ""


@dataclass
class FundConfig:
    """How much of the shared reserve fund a meeting may draw"""
    enabled: bool = False
    cap_amount: float = 0.0
    excluded_participant_ids: Set[str] = field(default_factory=set)


@dataclass
class Contribution:
    """What one participant paid and what they are obligated to pay"""
    total_paid: float = 0.0
    owed_amount: float = 0.0


@dataclass
class FundAllocation:
    """Contributions after the fund has offset eligible obligations"""
    contributions: Dict[str, Contribution]
    fund_used: float
    fund_left: float
    eligible_ids: List[str]


@dataclass
class ParticipantBalance:
    total_paid: float
    owed_amount: float  # post-fund
    net_balance: float  # positive -> is owed money; negative -> owes money


@dataclass
class FundPayout:
    participant_id: str
    amount: float


@dataclass
class Transfer:
    from_participant_id: str
    to_participant_id: str
    amount: float


@dataclass
class SettlementResult:
    """Complete settlement of one meeting"""
    per_participant: Dict[str, ParticipantBalance] = field(default_factory=dict)
    fund_payouts: List[FundPayout] = field(default_factory=list)
    transfers: List[Transfer] = field(default_factory=list)
    fund_used: float = 0.0
    fund_left: float = 0.0


@dataclass
class Meeting:
    """Snapshot of a meeting: who came, what was spent, how the fund is used"""
    id: str
    name: str
    date: str  # YYYY-MM-DD
    participants: List[Participant]
    expenses: List[Expense]
    fund: Optional[FundConfig] = None
    version: int = 1
    is_settled: bool = False  # finalized; fund withdrawal already recorded

    def participant_name(self, participant_id: str) -> str:
        for p in self.participants:
            if p.id == participant_id:
                return p.name
        return "(unknown)"


@dataclass
class FundTransaction:
    """Reserve fund ledger entry; negative amount is a withdrawal"""
    meeting_id: str
    amount: float
    description: str
    date: str  # YYYY-MM-DD
    type: str = MEETING_CONTRIBUTION
