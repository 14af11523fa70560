from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from roomsplit.db.database import get_db
from roomsplit.api.v1.dependencies import get_current_user_id, get_member_household
from roomsplit.models.households import Household
from roomsplit.services.qr_code_service import (
    get_household_qr_codes, add_qr_code, update_account_number, delete_qr_code
)
from roomsplit.schemas.qr_code_schema import QRCodeCreate, QRCodeOut, AccountNumberUpdate

router = APIRouter(prefix="/households/{household_id}/qr-codes", tags=["qr-codes"])


@router.get("/", response_model=List[QRCodeOut])
def get_qr_codes(
    roommate_id: Optional[str] = None,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Get payment codes of the household, optionally for one roommate"""
    return get_household_qr_codes(db, household.id, roommate_id)


@router.post("/", response_model=QRCodeOut)
def create_qr_code(
    qr_data: QRCodeCreate,
    household: Household = Depends(get_member_household),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Add a payment code (admins, or the user linked to the roommate)"""
    return add_qr_code(db, household.id, qr_data, user_id)


@router.patch("/{qr_code_id}/account-number", response_model=QRCodeOut)
def set_account_number(
    qr_code_id: str,
    update: AccountNumberUpdate,
    household: Household = Depends(get_member_household),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return update_account_number(db, household.id, qr_code_id, update, user_id)


@router.delete("/{qr_code_id}")
def remove_qr_code(
    qr_code_id: str,
    household: Household = Depends(get_member_household),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    delete_qr_code(db, household.id, qr_code_id, user_id)
    return {"message": "QR code deleted successfully"}
