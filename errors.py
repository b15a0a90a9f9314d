"""
Exceptions raised when a meeting cannot be settled
"""
from __future__ import annotations
from typing import Optional


class SettlementError(ValueError):
    """Base error: the settlement for this meeting is unavailable"""

    def __init__(self, message: str, expense_id: str = "", expense_index: Optional[int] = None):
        super().__init__(message)
        self.expense_id = expense_id
        self.expense_index = expense_index

    def __str__(self) -> str:
        msg = super().__str__()
        if self.expense_id:
            return f"expense {self.expense_id!r}: {msg}"
        if self.expense_index is not None:
            return f"expense #{self.expense_index + 1}: {msg}"
        return msg


class InvalidExpenseError(SettlementError):
    """Expense amount or split type is not usable"""


class InvalidSplitError(InvalidExpenseError):
    """Equal split with nobody in it, or custom split that doesn't add up"""


class UnknownParticipantError(SettlementError):
    """Expense references a participant that is not part of the meeting"""

    def __init__(self, participant_id: str, role: str, **kwargs):
        super().__init__(f"unknown {role} participant {participant_id!r}", **kwargs)
        self.participant_id = participant_id
        self.role = role


class DuplicateParticipantError(SettlementError):
    """Same participant id listed more than once for a meeting"""

    def __init__(self, participant_id: str):
        super().__init__(f"participant {participant_id!r} is listed more than once")
        self.participant_id = participant_id


class AlreadySettledError(SettlementError):
    """Meeting settlement has already been finalized"""
