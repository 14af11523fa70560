from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from roomsplit.db.database import get_db
from roomsplit.api.v1.dependencies import get_member_household
from roomsplit.models.households import Household
from roomsplit.services.settlement_service import (
    get_balances, get_transfers, get_expense_debts, get_member_breakdown
)
from roomsplit.services.payment_status_service import get_payment_statuses, set_payment_status
from roomsplit.schemas.settlement_schema import (
    BalanceOut, TransferOut, ExpenseDebtOut, MemberDebtOut, PaymentStatusUpdate, PaymentStatusOut
)

router = APIRouter(prefix="/households/{household_id}/settlements", tags=["settlements"])


@router.get("/balances", response_model=List[BalanceOut])
def get_household_balances(
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Get the net balance of every roommate"""
    return get_balances(db, household.id)


@router.get("/transfers", response_model=List[TransferOut])
def get_settlement_transfers(
    details: bool = False,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Get the transfers that settle all balances"""
    return get_transfers(db, household.id, with_details=details)


@router.get("/debts", response_model=List[ExpenseDebtOut])
def get_household_expense_debts(
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Get every participant's debt per expense, optionally for one month (YYYY-MM)"""
    return get_expense_debts(db, household.id, month=month)


@router.get("/roommates/{roommate_id}/{direction}", response_model=List[MemberDebtOut])
def get_roommate_breakdown(
    roommate_id: str,
    direction: str,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Get what a roommate owes ("debts") or is owed ("credits"), per counterparty"""
    return get_member_breakdown(db, household.id, roommate_id, direction)


@router.get("/payment-statuses", response_model=List[PaymentStatusOut])
def get_household_payment_statuses(
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    return get_payment_statuses(db, household.id)


@router.put("/payment-statuses", response_model=PaymentStatusOut)
def update_payment_status(
    update: PaymentStatusUpdate,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Mark a transfer, or one expense debt, as paid or unpaid"""
    return set_payment_status(db, household.id, update)
