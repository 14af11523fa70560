"""
Unit Tests for the Balance & Settlement Engine

Tests cover:
- Equal and weighted splits
- Rounding once per member after summation
- Unknown member policy (lenient and strict)
- Greedy matching order, determinism and transfer bounds
- Residual detection
- Transfer details, per-expense debts and member breakdowns
"""

import logging
import re
import pytest
from datetime import datetime
from decimal import Decimal
from roomsplit.utils.settlement_engine import (
    ExpenseRecord,
    MemberRecord,
    Transfer,
    UnbalancedLedgerError,
    UnknownMemberError,
    compute_balances,
    compute_settlement_transfers,
    expand_participants,
    expense_debts,
    match_settlements,
    member_debt_breakdown,
    payment_status_key,
    round_amount,
    totals_by_payer,
    totals_by_recipient,
)


def abc():
    return [MemberRecord("A"), MemberRecord("B"), MemberRecord("C")]


@pytest.mark.unit
class TestRoundAmount:
    """Test rounding to whole currency units."""

    def test_ties_round_away_from_zero(self):
        assert round_amount(Decimal("3333.5")) == 3334
        assert round_amount(Decimal("-2.5")) == -3

    def test_plain_rounding(self):
        assert round_amount(Decimal("2.4")) == 2
        assert round_amount(Decimal("-2.6")) == -3
        assert round_amount(1234.6) == 1235

    def test_returns_int(self):
        assert isinstance(round_amount(Decimal("10.0")), int)


@pytest.mark.unit
class TestComputeBalances:
    """Test the balance calculator."""

    def test_equal_split(self):
        """9000 paid by A, shared by A, B and C."""
        expenses = [ExpenseRecord(id="e1", amount=9000, paid_by="A", shared_with=("A", "B", "C"))]

        assert compute_balances(abc(), expenses) == {"A": 6000, "B": -3000, "C": -3000}

    def test_weighted_split(self):
        """B carries double weight, C pays and does not take part."""
        expenses = [ExpenseRecord(id="e1", amount=9000, paid_by="C", shared_with=("A", "B"),
                                  multipliers={"B": 2})]

        assert compute_balances(abc(), expenses) == {"A": -3000, "B": -6000, "C": 9000}

    def test_empty_participants_is_noop(self):
        expenses = [ExpenseRecord(id="e1", amount=9000, paid_by="A", shared_with=())]

        assert compute_balances(abc(), expenses) == {"A": 0, "B": 0, "C": 0}

    def test_members_without_expenses_appear_at_zero(self, members):
        expenses = [ExpenseRecord(id="e1", amount=100, paid_by="A", shared_with=("A", "B"))]

        balances = compute_balances(members, expenses)

        assert set(balances) == {"A", "B", "C", "D"}
        assert balances["C"] == 0
        assert balances["D"] == 0

    def test_conservation(self, members, sample_expenses):
        """Balances sum to zero within one unit of rounding per member."""
        balances = compute_balances(members, sample_expenses)

        assert abs(sum(balances.values())) <= len(members)
        assert balances == {"A": 46667, "B": 10000, "C": -83333, "D": 26667}

    def test_rounds_once_after_summation(self):
        """Three thirds of 100 sum to exactly 100 instead of 3 x 33."""
        expenses = [
            ExpenseRecord(id=f"e{n}", amount=100, paid_by="A", shared_with=("A", "B", "C"))
            for n in range(3)
        ]

        assert compute_balances(abc(), expenses) == {"A": 200, "B": -100, "C": -100}

    def test_idempotent(self, members, sample_expenses):
        first = compute_balances(members, sample_expenses)
        second = compute_balances(members, sample_expenses)

        assert first == second

    def test_duplicate_participants_counted_once(self):
        expenses = [ExpenseRecord(id="e1", amount=1000, paid_by="A", shared_with=("A", "B", "B"))]

        assert compute_balances(abc(), expenses) == {"A": 500, "B": -500, "C": 0}

    def test_decimal_and_float_amounts(self):
        expenses = [
            ExpenseRecord(id="e1", amount=Decimal("10.5"), paid_by="A", shared_with=("B",)),
            ExpenseRecord(id="e2", amount=0.5, paid_by="A", shared_with=("C",)),
        ]

        assert compute_balances(abc(), expenses) == {"A": 11, "B": -11, "C": -1}

    def test_unknown_participant_dropped_by_default(self):
        expenses = [ExpenseRecord(id="e1", amount=1000, paid_by="A", shared_with=("A", "ghost"))]

        balances = compute_balances(abc(), expenses)

        assert balances == {"A": 500, "B": 0, "C": 0}
        assert "ghost" not in balances

    def test_unknown_payer_dropped_by_default(self):
        expenses = [ExpenseRecord(id="e1", amount=1000, paid_by="ghost", shared_with=("A", "B"))]

        assert compute_balances(abc(), expenses) == {"A": -500, "B": -500, "C": 0}

    def test_unknown_member_strict(self):
        expenses = [ExpenseRecord(id="e1", amount=1000, paid_by="A", shared_with=("A", "ghost"))]

        with pytest.raises(UnknownMemberError) as exc_info:
            compute_balances(abc(), expenses, strict=True)

        assert exc_info.value.expense_id == "e1"
        assert exc_info.value.member_ids == ["ghost"]

    @pytest.mark.parametrize("weight", [0, -1, Decimal("-0.5")])
    def test_non_positive_weight_rejected(self, weight):
        expenses = [ExpenseRecord(id="e1", amount=1000, paid_by="A", shared_with=("A", "B"),
                                  multipliers={"B": weight})]

        with pytest.raises(ValueError, match="must be positive"):
            compute_balances(abc(), expenses)


@pytest.mark.unit
class TestExpandParticipants:
    """Test the payer's-room default for empty participant lists."""

    def test_empty_expands_to_payer_room(self, members):
        assert expand_participants("A", [], members) == ("A", "B", "C")
        assert expand_participants("D", [], members) == ("D",)

    def test_explicit_selection_kept_without_duplicates(self, members):
        assert expand_participants("A", ["B", "D", "B"], members) == ("B", "D")

    def test_unknown_payer_stays_empty(self, members):
        assert expand_participants("ghost", [], members) == ()


@pytest.mark.unit
class TestMatchSettlements:
    """Test the greedy two-pointer matcher."""

    def test_two_debtors_one_creditor(self):
        transfers = match_settlements({"A": -500, "B": -300, "C": 800})

        assert transfers == [
            Transfer(from_id="A", to_id="C", amount=500),
            Transfer(from_id="B", to_id="C", amount=300),
        ]

    def test_deterministic_regardless_of_input_order(self):
        balances = {"A": 500, "B": -100, "C": -150, "D": -200, "E": -50}
        reordered = dict(reversed(list(balances.items())))

        assert match_settlements(balances) == match_settlements(balances)
        assert match_settlements(balances) == match_settlements(reordered)

    def test_equal_debtors_ordered_by_id(self):
        transfers = match_settlements({"B": -100, "A": -100, "C": 200})

        assert [(t.from_id, t.to_id) for t in transfers] == [("A", "C"), ("B", "C")]

    def test_equal_creditors_ordered_by_id(self):
        transfers = match_settlements({"C": 100, "A": -200, "B": 100})

        assert [(t.from_id, t.to_id) for t in transfers] == [("A", "B"), ("A", "C")]

    def test_at_most_n_minus_one_transfers(self, assert_settles):
        balances = {
            "m0": 1200, "m1": -300, "m2": -450, "m3": 800, "m4": -250,
            "m5": -1000, "m6": 100, "m7": -50, "m8": -50, "m9": 0,
        }
        non_zero = sum(1 for balance in balances.values() if balance != 0)

        transfers = match_settlements(balances)

        assert len(transfers) <= non_zero - 1
        assert all(transfer.amount > 0 for transfer in transfers)
        assert_settles(balances, transfers, tolerance=0)

    @pytest.mark.parametrize("balances", [
        {"m0": 1200, "m1": -300, "m2": -450, "m3": 800, "m4": -250, "m5": -1000, "m6": 100, "m7": -50, "m8": -50},
        {"A": -500, "B": -300, "C": 800},
        {"A": -33, "B": -33, "C": -33, "D": 100},
    ])
    def test_walk_finishes_within_member_count(self, caplog, balances):
        """Every step retires at least one member, so the walk needs at most N iterations."""
        caplog.set_level(logging.DEBUG, logger="roomsplit.utils.settlement_engine")

        match_settlements(balances)

        iterations = [
            int(match.group(1))
            for match in (re.search(r"in (\d+) iterations", record.getMessage()) for record in caplog.records)
            if match
        ]
        assert len(iterations) == 1
        assert 0 < iterations[0] <= len(balances)

    def test_empty_and_zero_balances(self):
        assert match_settlements({}) == []
        assert match_settlements({"A": 0, "B": 0}) == []

    def test_only_creditors(self):
        assert match_settlements({"A": 100, "B": 0}) == []

    def test_sub_unit_balances_produce_no_transfer(self):
        assert match_settlements({"A": Decimal("-0.4"), "B": Decimal("0.4")}) == []

    def test_unbalanced_ledger_raises(self):
        with pytest.raises(UnbalancedLedgerError) as exc_info:
            match_settlements({"A": -500, "C": 800})

        assert exc_info.value.residual == Decimal("300")

    def test_explicit_residual_tolerance(self):
        transfers = match_settlements({"A": -500, "C": 800}, residual_tolerance=300)

        assert transfers == [Transfer(from_id="A", to_id="C", amount=500)]

    def test_rounding_slack_is_tolerated(self):
        """100 split three ways leaves the payer one unit over."""
        members = [MemberRecord("A"), MemberRecord("B"), MemberRecord("C"), MemberRecord("D")]
        expenses = [ExpenseRecord(id="e1", amount=100, paid_by="D", shared_with=("A", "B", "C"))]

        balances = compute_balances(members, expenses)
        transfers = match_settlements(balances)

        assert balances == {"A": -33, "B": -33, "C": -33, "D": 100}
        assert [t.amount for t in transfers] == [33, 33, 33]

    def test_sample_household_settles(self, members, sample_expenses, assert_settles):
        balances = compute_balances(members, sample_expenses)
        transfers = match_settlements(balances)

        assert transfers == [
            Transfer(from_id="C", to_id="A", amount=46667),
            Transfer(from_id="C", to_id="D", amount=26667),
            Transfer(from_id="C", to_id="B", amount=9999),
        ]
        assert_settles(balances, transfers)


@pytest.mark.unit
class TestComputeSettlementTransfers:
    """Test the one-call pipeline and transfer details."""

    @pytest.fixture
    def expenses(self):
        return [
            ExpenseRecord(id="e1", amount=9000, paid_by="C", shared_with=("A", "B"),
                          multipliers={"B": 2}, description="Rent", date=datetime(2024, 5, 1)),
            ExpenseRecord(id="e2", amount=300, paid_by="C", shared_with=("A", "C"),
                          description="Water", date=datetime(2024, 5, 3)),
        ]

    def test_without_details(self, expenses):
        transfers = compute_settlement_transfers(abc(), expenses)

        assert transfers == [
            Transfer(from_id="B", to_id="C", amount=6000),
            Transfer(from_id="A", to_id="C", amount=3150),
        ]

    def test_with_details(self, expenses):
        transfers = compute_settlement_transfers(abc(), expenses, with_details=True)
        by_sender = {transfer.from_id: transfer for transfer in transfers}

        b_details = by_sender["B"].details
        assert [(d.expense_id, d.amount, d.multiplier) for d in b_details] == [("e1", 6000, Decimal("2"))]

        a_details = by_sender["A"].details
        assert [(d.expense_id, d.amount, d.multiplier) for d in a_details] == [("e1", 3000, None), ("e2", 150, None)]
        assert a_details[1].description == "Water"

    def test_idempotent(self, expenses):
        assert compute_settlement_transfers(abc(), expenses, with_details=True) == \
            compute_settlement_transfers(abc(), expenses, with_details=True)

    def test_strict_passthrough(self):
        expenses = [ExpenseRecord(id="e1", amount=100, paid_by="ghost", shared_with=("A",))]

        with pytest.raises(UnknownMemberError):
            compute_settlement_transfers(abc(), expenses, strict=True)


@pytest.mark.unit
class TestPaymentStatusKey:

    def test_aggregate_key(self):
        assert payment_status_key("a", "b") == "a-b"
        assert Transfer(from_id="a", to_id="b", amount=1).key == "a-b"

    def test_expense_key(self):
        assert payment_status_key("a", "b", "e1") == "a-b-e1"


@pytest.mark.unit
class TestExpenseDebts:
    """Test per-expense debts and their totals."""

    def test_month_filter_and_payer_share_skipped(self, sample_expenses):
        debts = expense_debts(sample_expenses, month="2024-03")

        assert [(d.from_id, d.to_id, d.amount, d.expense_id) for d in debts] == [
            ("B", "A", 30000, "e1"),
            ("C", "A", 30000, "e1"),
            ("C", "B", 40000, "e2"),
        ]
        assert debts[0].key == "B-A-e1"

    def test_all_months(self, sample_expenses):
        debts = expense_debts(sample_expenses)

        assert len(debts) == 5
        assert {(d.from_id, d.amount) for d in debts if d.expense_id == "e3"} == {("A", 13333), ("C", 13333)}

    def test_undated_expense_never_matches_month(self):
        expenses = [ExpenseRecord(id="e1", amount=100, paid_by="A", shared_with=("A", "B"))]

        assert expense_debts(expenses, month="2024-03") == []
        assert len(expense_debts(expenses)) == 1

    def test_totals(self, sample_expenses):
        debts = expense_debts(sample_expenses, month="2024-03")

        assert totals_by_recipient(debts) == {"A": 60000, "B": 40000}
        assert totals_by_payer(debts) == {"B": 30000, "C": 70000}


@pytest.mark.unit
class TestMemberDebtBreakdown:
    """Test grouping of one member's debts and credits."""

    @pytest.fixture
    def expenses(self):
        return [
            ExpenseRecord(id="e1", amount=9000, paid_by="C", shared_with=("A", "B"), multipliers={"B": 2}),
            ExpenseRecord(id="e2", amount=300, paid_by="C", shared_with=("A", "C")),
            ExpenseRecord(id="e3", amount=400, paid_by="A", shared_with=()),
        ]

    def test_credits_sorted_largest_first(self, expenses):
        breakdown = member_debt_breakdown("C", expenses, "credits")

        assert [(d.from_id, d.to_id, d.amount) for d in breakdown] == [("B", "C", 6000), ("A", "C", 3150)]
        assert breakdown[0].details[0].multiplier == Decimal("2")
        assert [d.expense_id for d in breakdown[1].details] == ["e1", "e2"]

    def test_debts(self, expenses):
        breakdown = member_debt_breakdown("A", expenses, "debts")

        assert [(d.from_id, d.to_id, d.amount) for d in breakdown] == [("A", "C", 3150)]

    def test_payer_owes_nothing_to_self(self, expenses):
        assert member_debt_breakdown("C", expenses, "debts") == []

    def test_invalid_direction(self, expenses):
        with pytest.raises(ValueError, match="direction"):
            member_debt_breakdown("A", expenses, "sideways")
