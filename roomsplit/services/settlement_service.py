import logging
from sqlalchemy.orm import Session
from fastapi import HTTPException
from typing import List, Optional
from roomsplit.schemas.settlement_schema import (
    BalanceOut, TransferOut, TransferDetailOut, ExpenseDebtOut, MemberDebtOut
)
from roomsplit.services.expense_service import load_snapshot
from roomsplit.services.payment_status_service import get_payment_status_map
from roomsplit.utils.settlement_engine import (
    SettlementError, compute_balances, compute_settlement_transfers, expense_debts, member_debt_breakdown
)

logger = logging.getLogger(__name__)


def get_balances(db: Session, household_id: str) -> List[BalanceOut]:
    """Net balance of every roommate, recomputed from the stored expenses"""
    members, expenses = load_snapshot(db, household_id)
    balances = compute_balances(members, expenses)
    return [
        BalanceOut(roommate_id=member.id, name=member.name, room=member.room, balance=balances[member.id])
        for member in members
    ]


def get_transfers(db: Session, household_id: str, with_details: bool = False) -> List[TransferOut]:
    """Settlement transfers with their persisted paid flags"""
    members, expenses = load_snapshot(db, household_id)
    try:
        transfers = compute_settlement_transfers(members, expenses, with_details=with_details)
    except SettlementError as e:
        logger.error(f"Cannot settle household {household_id}: {e}")
        raise HTTPException(status_code=409, detail=str(e))

    paid = get_payment_status_map(db, household_id)
    return [
        TransferOut(
            from_id=transfer.from_id,
            to_id=transfer.to_id,
            amount=transfer.amount,
            payment_key=transfer.key,
            is_paid=paid.get(transfer.key, False),
            details=[TransferDetailOut.model_validate(detail) for detail in transfer.details]
        )
        for transfer in transfers
    ]


def get_expense_debts(db: Session, household_id: str, month: Optional[str] = None) -> List[ExpenseDebtOut]:
    """Per-expense debts of every participant to the payer, with paid flags"""
    _, expenses = load_snapshot(db, household_id)
    paid = get_payment_status_map(db, household_id)
    return [
        ExpenseDebtOut(
            from_id=debt.from_id,
            to_id=debt.to_id,
            amount=debt.amount,
            expense_id=debt.expense_id,
            description=debt.description,
            date=debt.date,
            payment_key=debt.key,
            is_paid=paid.get(debt.key, False)
        )
        for debt in expense_debts(expenses, month=month)
    ]


def get_member_breakdown(db: Session, household_id: str, roommate_id: str, direction: str) -> List[MemberDebtOut]:
    """What one roommate owes (debts) or is owed (credits), grouped by counterparty"""
    members, expenses = load_snapshot(db, household_id)
    if roommate_id not in {member.id for member in members}:
        raise HTTPException(status_code=404, detail="Roommate not found")

    try:
        breakdown = member_debt_breakdown(roommate_id, expenses, direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [MemberDebtOut.model_validate(debt) for debt in breakdown]
