from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from roomsplit.db.database import get_db
from roomsplit.api.v1.dependencies import get_current_user_id, get_member_household
from roomsplit.models.households import Household
from roomsplit.services.expense_service import (
    create_expense, get_expense, get_household_expenses, get_expense_shares,
    get_shares_by_expense, delete_expense
)
from roomsplit.schemas.expense_schema import (
    ExpenseCreate, ExpenseWithShares, ExpenseShareOut
)

router = APIRouter(prefix="/households/{household_id}/expenses", tags=["expenses"])


def _with_shares(expense, shares) -> ExpenseWithShares:
    return ExpenseWithShares(
        id=expense.id,
        household_id=expense.household_id,
        description=expense.description,
        amount=expense.amount,
        paid_by=expense.paid_by,
        created_by=expense.created_by,
        date=expense.date,
        shares=[ExpenseShareOut.model_validate(share) for share in shares]
    )


@router.post("/", response_model=ExpenseWithShares)
def create_new_expense(
    expense_data: ExpenseCreate,
    household: Household = Depends(get_member_household),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new expense; without shares it is split across the payer's room"""
    expense = create_expense(db, household.id, expense_data, user_id)
    return _with_shares(expense, get_expense_shares(db, expense.id))


@router.get("/", response_model=List[ExpenseWithShares])
def get_household_expenses_list(
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Get all expenses for a household"""
    expenses = get_household_expenses(db, household.id)
    shares = get_shares_by_expense(db, [expense.id for expense in expenses])
    return [_with_shares(expense, shares[expense.id]) for expense in expenses]


@router.get("/{expense_id}", response_model=ExpenseWithShares)
def get_expense_details(
    expense_id: str,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Get expense details with shares"""
    expense = get_expense(db, household.id, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return _with_shares(expense, get_expense_shares(db, expense_id))


@router.delete("/{expense_id}")
def delete_existing_expense(
    expense_id: str,
    household: Household = Depends(get_member_household),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete an expense (creator or admin only)"""
    delete_expense(db, household.id, expense_id, user_id)
    return {"message": "Expense deleted successfully"}
