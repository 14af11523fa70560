import logging
from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException
from typing import Dict, List, Optional, Tuple
from roomsplit.models.expenses import Expense, ExpenseShare
from roomsplit.schemas.expense_schema import ExpenseCreate
from roomsplit.utils.settlement_engine import ExpenseRecord, MemberRecord, expand_participants, round_amount

logger = logging.getLogger(__name__)


def create_expense(db: Session, household_id: str, expense_data: ExpenseCreate, created_by: Optional[str]) -> Expense:
    """
    Create an expense and its shares.

    The amount is rounded to whole currency units. Without explicit shares the
    expense is split equally between everyone in the payer's room.
    """
    from .roommate_service import get_roommates, to_member_record

    members = [to_member_record(roommate) for roommate in get_roommates(db, household_id)]
    member_ids = {member.id for member in members}

    if expense_data.paid_by not in member_ids:
        raise HTTPException(status_code=400, detail="Payer is not a roommate of this household")

    for share in expense_data.shares:
        if share.roommate_id not in member_ids:
            raise HTTPException(status_code=400, detail=f"Roommate {share.roommate_id} is not part of this household")

    amount = round_amount(expense_data.amount)
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be at least one currency unit")

    multipliers = {share.roommate_id: share.multiplier for share in expense_data.shares}
    participants = expand_participants(expense_data.paid_by, list(multipliers), members)

    expense = Expense(
        household_id=household_id,
        description=expense_data.description.strip(),
        amount=amount,
        paid_by=expense_data.paid_by,
        created_by=created_by
    )
    db.add(expense)
    db.flush()

    for roommate_id in participants:
        db.add(ExpenseShare(
            expense_id=expense.id,
            roommate_id=roommate_id,
            multiplier=multipliers.get(roommate_id, 1)
        ))

    db.commit()
    db.refresh(expense)
    logger.info(f"Expense {expense.id} of {amount} added to household {household_id} "
                f"shared by {len(participants)} roommates")
    return expense


def get_expense(db: Session, household_id: str, expense_id: str) -> Optional[Expense]:
    """Get an expense by ID within a household"""
    return db.query(Expense).filter(
        and_(Expense.id == expense_id, Expense.household_id == household_id)
    ).first()


def get_household_expenses(db: Session, household_id: str) -> List[Expense]:
    """Get all expenses for a household, oldest first"""
    return db.query(Expense).filter(Expense.household_id == household_id).order_by(Expense.date, Expense.id).all()


def get_expense_shares(db: Session, expense_id: str) -> List[ExpenseShare]:
    """Get all shares for an expense"""
    return db.query(ExpenseShare).filter(ExpenseShare.expense_id == expense_id).all()


def get_shares_by_expense(db: Session, expense_ids: List[str]) -> Dict[str, List[ExpenseShare]]:
    """Load the shares of many expenses with a single query"""
    shares: Dict[str, List[ExpenseShare]] = {expense_id: [] for expense_id in expense_ids}
    if not expense_ids:
        return shares
    for share in db.query(ExpenseShare).filter(ExpenseShare.expense_id.in_(expense_ids)).all():
        shares[share.expense_id].append(share)
    return shares


def delete_expense(db: Session, household_id: str, expense_id: str, user_id: str):
    """Delete an expense (creator or household admin only)"""
    from .household_service import is_household_admin

    expense = get_expense(db, household_id, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")

    if expense.created_by != user_id and not is_household_admin(db, household_id, user_id):
        raise HTTPException(status_code=403, detail="Only the expense creator or a household admin can delete expense")

    db.query(ExpenseShare).filter(ExpenseShare.expense_id == expense_id).delete(synchronize_session=False)
    db.delete(expense)
    db.commit()
    logger.info(f"Expense {expense_id} deleted from household {household_id} by {user_id}")


def to_expense_record(expense: Expense, shares: List[ExpenseShare]) -> ExpenseRecord:
    return ExpenseRecord(
        id=expense.id,
        amount=expense.amount,
        paid_by=expense.paid_by,
        shared_with=tuple(share.roommate_id for share in shares),
        multipliers={share.roommate_id: share.multiplier for share in shares},
        description=expense.description,
        date=expense.date,
        household_id=expense.household_id,
        created_by=expense.created_by
    )


def load_snapshot(db: Session, household_id: str) -> Tuple[List[MemberRecord], List[ExpenseRecord]]:
    """Read the household's roommates and expenses into engine records"""
    from .roommate_service import get_roommates, to_member_record

    members = [to_member_record(roommate) for roommate in get_roommates(db, household_id)]
    expenses = get_household_expenses(db, household_id)
    shares = get_shares_by_expense(db, [expense.id for expense in expenses])
    records = [to_expense_record(expense, shares[expense.id]) for expense in expenses]
    return members, records
