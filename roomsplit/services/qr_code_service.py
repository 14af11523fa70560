import logging
from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException
from typing import List, Optional
from roomsplit.models.qr_codes import RoommateQRCode
from roomsplit.schemas.qr_code_schema import QRCodeCreate, AccountNumberUpdate

logger = logging.getLogger(__name__)


def can_manage_roommate_qr(db: Session, household_id: str, roommate_id: str, user_id: str) -> bool:
    """Admins manage every roommate's codes, other users only the roommate linked to them"""
    from .household_service import membership_summary

    is_admin, linked_roommate_id = membership_summary(db, household_id, user_id)
    return is_admin or linked_roommate_id == roommate_id


def get_household_qr_codes(db: Session, household_id: str, roommate_id: Optional[str] = None) -> List[RoommateQRCode]:
    query = db.query(RoommateQRCode).filter(RoommateQRCode.household_id == household_id)
    if roommate_id:
        query = query.filter(RoommateQRCode.roommate_id == roommate_id)
    return query.order_by(RoommateQRCode.created_at).all()


def get_qr_code(db: Session, household_id: str, qr_code_id: str) -> Optional[RoommateQRCode]:
    return db.query(RoommateQRCode).filter(
        and_(RoommateQRCode.id == qr_code_id, RoommateQRCode.household_id == household_id)
    ).first()


def add_qr_code(db: Session, household_id: str, qr_data: QRCodeCreate, user_id: str) -> RoommateQRCode:
    """Store a payment QR code or account number for a roommate"""
    from .roommate_service import get_roommate

    if not get_roommate(db, household_id, qr_data.roommate_id):
        raise HTTPException(status_code=404, detail="Roommate not found")

    if not can_manage_roommate_qr(db, household_id, qr_data.roommate_id, user_id):
        raise HTTPException(status_code=403, detail="You can only manage your own payment codes")

    qr_code = RoommateQRCode(household_id=household_id, **qr_data.model_dump())
    db.add(qr_code)
    db.commit()
    db.refresh(qr_code)
    logger.info(f"QR code {qr_code.id} added for roommate {qr_data.roommate_id}")
    return qr_code


def _get_manageable_qr_code(db: Session, household_id: str, qr_code_id: str, user_id: str) -> RoommateQRCode:
    qr_code = get_qr_code(db, household_id, qr_code_id)
    if not qr_code:
        raise HTTPException(status_code=404, detail="QR code not found")

    if not can_manage_roommate_qr(db, household_id, qr_code.roommate_id, user_id):
        raise HTTPException(status_code=403, detail="You can only manage your own payment codes")
    return qr_code


def update_account_number(db: Session, household_id: str, qr_code_id: str,
                          update: AccountNumberUpdate, user_id: str) -> RoommateQRCode:
    """Set the account number; with a bank name the label becomes "<bank> - <last 4 digits>" """
    qr_code = _get_manageable_qr_code(db, household_id, qr_code_id, user_id)

    qr_code.account_number = update.account_number
    if update.bank:
        qr_code.qr_label = f"{update.bank} - {update.account_number[-4:]}"

    db.commit()
    db.refresh(qr_code)
    return qr_code


def delete_qr_code(db: Session, household_id: str, qr_code_id: str, user_id: str):
    qr_code = _get_manageable_qr_code(db, household_id, qr_code_id, user_id)

    db.delete(qr_code)
    db.commit()
    logger.info(f"QR code {qr_code_id} deleted from household {household_id}")
