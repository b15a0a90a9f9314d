import pytest

from models import CustomSplit, Expense, FundConfig, Participant


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("MEETSPLIT_HOME", str(tmp_path / "home"))


@pytest.fixture
def abc():
    return [Participant("a", "Alice"), Participant("b", "Bob"), Participant("c", "Chris")]


def equal(payer, amount, among, id=""):
    return Expense(paid_by_id=payer, total_amount=amount, split_among_ids=list(among), id=id)


def custom(payer, amount, splits, id=""):
    return Expense(
        paid_by_id=payer,
        total_amount=amount,
        split_type="custom",
        custom_splits=[CustomSplit(pid, amt) for pid, amt in splits.items()],
        id=id,
    )


def fund(cap, excluded=()):
    return FundConfig(enabled=True, cap_amount=cap, excluded_participant_ids=set(excluded))
