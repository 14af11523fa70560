"""
Balance & Settlement Engine

This module turns a snapshot of household members and expenses into
per-member balances and a short list of transfers that settles them.

The engine works in two stages:
1. Balance calculation: every expense credits its payer with the full amount
   and debits each participant with a weighted share (weight / total weight)
2. Settlement matching: debtors and creditors are sorted and paired with a
   greedy two-pointer walk, emitting one transfer per pairing

All arithmetic is done with Decimal and balances are rounded to whole
currency units once, after summation.

Time Complexity: O(e * p) for balances + O(n log n) for matching
Space Complexity: O(n) for balances and transfers

Example Usage:
    from roomsplit.utils.settlement_engine import (
        ExpenseRecord, MemberRecord, compute_balances, compute_settlement_transfers
    )

    members = [MemberRecord("A"), MemberRecord("B"), MemberRecord("C")]
    expenses = [ExpenseRecord(id="e1", amount=9000, paid_by="C", shared_with=("A", "B"),
                              multipliers={"B": 2})]

    compute_balances(members, expenses)
    # {'A': -3000, 'B': -6000, 'C': 9000}
    compute_settlement_transfers(members, expenses)
    # [Transfer(from_id='B', to_id='C', amount=6000, details=()),
    #  Transfer(from_id='A', to_id='C', amount=3000, details=())]
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]

ZERO = Decimal("0")
ONE = Decimal("1")
DEFAULT_MULTIPLIER = ONE


class SettlementError(ValueError):
    """Base class for ledger inconsistencies detected by the engine."""


class UnbalancedLedgerError(SettlementError):
    """Raised when settlement matching leaves more than rounding slack behind."""

    def __init__(self, residual: Decimal, tolerance: Decimal):
        self.residual = residual
        self.tolerance = tolerance
        super().__init__(
            f"Ledger is unbalanced: residual={residual}, tolerance={tolerance}. "
            f"This indicates inconsistent expense data."
        )


class UnknownMemberError(SettlementError):
    """Raised in strict mode when an expense references a member that is not in the snapshot."""

    def __init__(self, expense_id: str, member_ids: Sequence[str]):
        self.expense_id = expense_id
        self.member_ids = list(member_ids)
        super().__init__(f"Expense {expense_id} references unknown members: {', '.join(self.member_ids)}")


@dataclass(frozen=True)
class MemberRecord:
    id: str
    name: str = ""
    room: str = ""
    household_id: Optional[str] = None


@dataclass(frozen=True)
class ExpenseRecord:
    """
    An expense as seen by the engine.

    `shared_with` must already be expanded (see expand_participants); an empty
    tuple means the expense is ignored. `multipliers` maps participant id to
    weight, missing participants weigh 1. `created_by` is None for expenses
    recorded before creator tracking existed.
    """
    id: str
    amount: Number
    paid_by: str
    shared_with: Tuple[str, ...] = ()
    multipliers: Mapping[str, Number] = field(default_factory=dict)
    description: str = ""
    date: Optional[datetime] = None
    household_id: Optional[str] = None
    created_by: Optional[str] = None


@dataclass(frozen=True)
class TransferDetail:
    expense_id: str
    description: str
    date: Optional[datetime]
    amount: int
    multiplier: Optional[Decimal] = None


@dataclass(frozen=True)
class Transfer:
    from_id: str
    to_id: str
    amount: int
    details: Tuple[TransferDetail, ...] = ()

    @property
    def key(self) -> str:
        return payment_status_key(self.from_id, self.to_id)


@dataclass(frozen=True)
class ExpenseDebt:
    """One participant's share of one expense, owed to the payer."""
    from_id: str
    to_id: str
    amount: int
    expense_id: str
    description: str
    date: Optional[datetime]

    @property
    def key(self) -> str:
        return payment_status_key(self.from_id, self.to_id, self.expense_id)


@dataclass(frozen=True)
class MemberDebt:
    from_id: str
    to_id: str
    amount: int
    details: Tuple[TransferDetail, ...] = ()


def to_decimal(value: Number) -> Decimal:
    """Convert ints, floats and Decimals to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_amount(value: Number) -> int:
    """
    Round a monetary value to whole currency units.

    Ties are rounded away from zero.

    Example:
        >>> round_amount(Decimal("3333.5"))
        3334
        >>> round_amount(Decimal("-2.5"))
        -3
    """
    return int(to_decimal(value).quantize(ONE, rounding=ROUND_HALF_UP))


def payment_status_key(from_id: str, to_id: str, expense_id: Optional[str] = None) -> str:
    """
    Build the synthetic key under which a transfer's paid/unpaid status is stored.

    Aggregate transfers use "from-to", per-expense debts use "from-to-expense".
    """
    if expense_id:
        return f"{from_id}-{to_id}-{expense_id}"
    return f"{from_id}-{to_id}"


def month_key(value: datetime) -> str:
    return f"{value.year}-{value.month:02d}"


def participants_of(expense: ExpenseRecord) -> Tuple[str, ...]:
    """Participants in first-seen order with duplicates removed."""
    return tuple(dict.fromkeys(expense.shared_with))


def weight_of(expense: ExpenseRecord, member_id: str) -> Decimal:
    weight = to_decimal(expense.multipliers.get(member_id, DEFAULT_MULTIPLIER))
    if weight <= ZERO:
        raise ValueError(
            f"Share multiplier must be positive, got {weight} for member {member_id} "
            f"in expense {expense.id}"
        )
    return weight


def total_weight(expense: ExpenseRecord) -> Decimal:
    return sum((weight_of(expense, member_id) for member_id in participants_of(expense)), ZERO)


def share_of(expense: ExpenseRecord, member_id: str) -> Decimal:
    """
    Unrounded share of an expense owed by one participant.

    Returns zero when the member does not take part in the expense.
    """
    participants = participants_of(expense)
    if member_id not in participants:
        return ZERO
    return to_decimal(expense.amount) * weight_of(expense, member_id) / total_weight(expense)


def expand_participants(
    paid_by: str,
    shared_with: Sequence[str],
    members: Iterable[MemberRecord]
) -> Tuple[str, ...]:
    """
    Apply the household default to an expense's participant list.

    An empty selection means "everyone in the payer's room". When the payer is
    unknown the empty selection is kept, which later makes the expense a no-op.
    """
    if shared_with:
        return tuple(dict.fromkeys(shared_with))

    members = list(members)
    payer = next((member for member in members if member.id == paid_by), None)
    if payer is None:
        logger.warning(f"Cannot expand participants: payer {paid_by} is not a known member")
        return ()

    return tuple(member.id for member in members if member.room == payer.room)


def compute_balances(
    members: Iterable[MemberRecord],
    expenses: Iterable[ExpenseRecord],
    strict: bool = False
) -> Dict[str, int]:
    """
    Calculate the net balance of every member.

    Net balance = total paid - total weighted share
    - Positive balance: member is owed money (creditor)
    - Negative balance: member owes money (debtor)

    Args:
        members: All members of the household; each starts at 0
        expenses: Expenses with an already expanded participant set
        strict: When True, an expense referencing an unknown member raises
            UnknownMemberError. When False the unknown member's share is
            dropped and only a warning is logged.

    Returns:
        Dictionary mapping member_id -> balance in whole currency units

    Raises:
        UnknownMemberError: strict mode and an unknown payer/participant
        ValueError: a participant has a non-positive multiplier

    Example:
        >>> members = [MemberRecord("A"), MemberRecord("B"), MemberRecord("C")]
        >>> expenses = [ExpenseRecord(id="e1", amount=9000, paid_by="A", shared_with=("A", "B", "C"))]
        >>> compute_balances(members, expenses)
        {'A': 6000, 'B': -3000, 'C': -3000}
    """
    balances: Dict[str, Decimal] = {member.id: ZERO for member in members}

    for expense in expenses:
        participants = participants_of(expense)
        if not participants:
            logger.debug(f"Skipping expense {expense.id}: no participants")
            continue

        unknown = [
            member_id
            for member_id in dict.fromkeys((expense.paid_by,) + participants)
            if member_id not in balances
        ]
        if unknown:
            if strict:
                raise UnknownMemberError(expense.id, unknown)
            logger.warning(f"Expense {expense.id} references unknown members {unknown}; ignoring their share")

        amount = to_decimal(expense.amount)
        weight_sum = total_weight(expense)

        if expense.paid_by in balances:
            balances[expense.paid_by] += amount

        for member_id in participants:
            if member_id in balances:
                balances[member_id] -= amount * weight_of(expense, member_id) / weight_sum

    return {member_id: round_amount(balance) for member_id, balance in balances.items()}


def match_settlements(
    balances: Mapping[str, Number],
    residual_tolerance: Optional[Number] = None
) -> List[Transfer]:
    """
    Pair debtors with creditors into as few transfers as the greedy walk allows.

    Debtors are sorted most negative first, creditors most positive first; equal
    balances are ordered by member id so the output is reproducible. Each step
    moves min(|debt|, credit) and a member leaves the walk once less than one
    currency unit remains. The walk is bounded by len(debtors) + len(creditors)
    iterations.

    Args:
        balances: Dictionary mapping member_id -> balance
        residual_tolerance: Largest leftover accepted after matching. Defaults
            to half a unit per non-zero member, the most that per-member
            rounding can leave behind.

    Returns:
        List of Transfer objects, in matching order

    Raises:
        UnbalancedLedgerError: leftover balance exceeds residual_tolerance

    Example:
        >>> match_settlements({"A": -500, "B": -300, "C": 800})
        [Transfer(from_id='A', to_id='C', amount=500, details=()),
         Transfer(from_id='B', to_id='C', amount=300, details=())]
    """
    debtors = sorted(
        ([member_id, to_decimal(balance)] for member_id, balance in balances.items() if balance < 0),
        key=lambda entry: (entry[1], entry[0])
    )
    creditors = sorted(
        ([member_id, to_decimal(balance)] for member_id, balance in balances.items() if balance > 0),
        key=lambda entry: (-entry[1], entry[0])
    )

    if not debtors or not creditors:
        return []

    max_iterations = len(debtors) + len(creditors)
    transfers: List[Transfer] = []
    iterations = 0
    i, j = 0, 0

    while i < len(debtors) and j < len(creditors) and iterations < max_iterations:
        iterations += 1
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(abs(debtor[1]), creditor[1])
        rounded = round_amount(amount)
        if rounded > 0:
            transfers.append(Transfer(from_id=debtor[0], to_id=creditor[0], amount=rounded))

        debtor[1] += amount
        creditor[1] -= amount

        if abs(debtor[1]) < ONE:
            i += 1
        if abs(creditor[1]) < ONE:
            j += 1

    residual = sum((abs(entry[1]) for entry in debtors[i:]), ZERO) + \
        sum((abs(entry[1]) for entry in creditors[j:]), ZERO)
    if residual_tolerance is None:
        tolerance = Decimal(max_iterations) / 2
    else:
        tolerance = to_decimal(residual_tolerance)

    if residual > tolerance:
        raise UnbalancedLedgerError(residual, tolerance)
    if residual > ZERO:
        logger.debug(f"Settlement left {residual} unmatched (within tolerance {tolerance})")

    logger.debug(f"Matched {len(debtors)} debtors with {len(creditors)} creditors "
                 f"in {iterations} iterations: {len(transfers)} transfers")
    return transfers


def _detail_for(expense: ExpenseRecord, member_id: str) -> TransferDetail:
    multiplier = weight_of(expense, member_id)
    return TransferDetail(
        expense_id=expense.id,
        description=expense.description,
        date=expense.date,
        amount=round_amount(share_of(expense, member_id)),
        multiplier=multiplier if multiplier > ONE else None
    )


def transfer_details(transfer: Transfer, expenses: Iterable[ExpenseRecord]) -> Tuple[TransferDetail, ...]:
    """
    Expenses paid by the transfer's receiver that the sender took part in.

    Each amount is the sender's weighted share of that single expense, rounded
    on its own, so the details need not add up to the transfer amount.
    """
    details = []
    for expense in expenses:
        if expense.paid_by != transfer.to_id or transfer.from_id not in participants_of(expense):
            continue
        detail = _detail_for(expense, transfer.from_id)
        if detail.amount > 0:
            details.append(detail)
    return tuple(details)


def compute_settlement_transfers(
    members: Iterable[MemberRecord],
    expenses: Iterable[ExpenseRecord],
    with_details: bool = False,
    strict: bool = False
) -> List[Transfer]:
    """
    Compute balances and settle them in one call.

    Args:
        members: All members of the household
        expenses: Expenses with an already expanded participant set
        with_details: Attach contributing-expense breakdowns to each transfer
        strict: Passed through to compute_balances

    Returns:
        List of Transfer objects
    """
    expenses = list(expenses)
    balances = compute_balances(members, expenses, strict=strict)
    transfers = match_settlements(balances)

    if with_details:
        transfers = [replace(transfer, details=transfer_details(transfer, expenses)) for transfer in transfers]

    return transfers


def expense_debts(expenses: Iterable[ExpenseRecord], month: Optional[str] = None) -> List[ExpenseDebt]:
    """
    List every participant's debt to the payer, one entry per expense.

    The payer's own share is skipped. `month` ("YYYY-MM") keeps only expenses
    dated in that month; undated expenses never match a month filter.
    """
    debts = []
    for expense in expenses:
        if month is not None and (expense.date is None or month_key(expense.date) != month):
            continue
        for member_id in participants_of(expense):
            if member_id == expense.paid_by:
                continue
            debts.append(ExpenseDebt(
                from_id=member_id,
                to_id=expense.paid_by,
                amount=round_amount(share_of(expense, member_id)),
                expense_id=expense.id,
                description=expense.description,
                date=expense.date
            ))
    return debts


def totals_by_recipient(debts: Iterable[ExpenseDebt]) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for debt in debts:
        totals[debt.to_id] = totals.get(debt.to_id, 0) + debt.amount
    return totals


def totals_by_payer(debts: Iterable[ExpenseDebt]) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for debt in debts:
        totals[debt.from_id] = totals.get(debt.from_id, 0) + debt.amount
    return totals


def member_debt_breakdown(
    member_id: str,
    expenses: Iterable[ExpenseRecord],
    direction: str = "debts"
) -> List[MemberDebt]:
    """
    Group one member's gross debts or credits by counterparty.

    Args:
        member_id: The member to report on
        expenses: Expenses with an already expanded participant set
        direction: "debts" for what the member owes to payers, "credits" for
            what participants owe the member

    Returns:
        List of MemberDebt objects sorted by amount, largest first
    """
    if direction not in ("debts", "credits"):
        raise ValueError(f"direction must be 'debts' or 'credits', got {direction!r}")

    grouped: Dict[Tuple[str, str], List[TransferDetail]] = {}

    for expense in expenses:
        participants = participants_of(expense)
        if not participants:
            continue

        if direction == "credits" and expense.paid_by == member_id:
            debtors = [participant for participant in participants if participant != member_id]
        elif direction == "debts" and member_id in participants and expense.paid_by != member_id:
            debtors = [member_id]
        else:
            continue

        for debtor in debtors:
            grouped.setdefault((debtor, expense.paid_by), []).append(_detail_for(expense, debtor))

    result = [
        MemberDebt(
            from_id=from_id,
            to_id=to_id,
            amount=sum(detail.amount for detail in details),
            details=tuple(details)
        )
        for (from_id, to_id), details in grouped.items()
    ]
    result.sort(key=lambda debt: debt.amount, reverse=True)
    return result
