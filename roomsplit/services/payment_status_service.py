import logging
from sqlalchemy.orm import Session
from sqlalchemy import and_
from typing import Dict, List
from roomsplit.models.payment_statuses import PaymentStatus
from roomsplit.schemas.settlement_schema import PaymentStatusUpdate
from roomsplit.utils.settlement_engine import payment_status_key

logger = logging.getLogger(__name__)


def get_payment_statuses(db: Session, household_id: str) -> List[PaymentStatus]:
    """Get all payment status records of a household"""
    return db.query(PaymentStatus).filter(PaymentStatus.household_id == household_id).all()


def get_payment_status_map(db: Session, household_id: str) -> Dict[str, bool]:
    """Paid flags keyed the same way computed transfers and expense debts are keyed"""
    return {
        payment_status_key(status.from_id, status.to_id, status.expense_id): status.is_paid
        for status in get_payment_statuses(db, household_id)
    }


def set_payment_status(db: Session, household_id: str, update: PaymentStatusUpdate) -> PaymentStatus:
    """Create or update the paid flag of a transfer (or of one expense debt)"""
    query = db.query(PaymentStatus).filter(
        and_(
            PaymentStatus.household_id == household_id,
            PaymentStatus.from_id == update.from_id,
            PaymentStatus.to_id == update.to_id
        )
    )
    if update.expense_id:
        query = query.filter(PaymentStatus.expense_id == update.expense_id)
    else:
        query = query.filter(PaymentStatus.expense_id.is_(None))

    status = query.first()
    if status:
        status.is_paid = update.is_paid
        status.amount = update.amount
    else:
        status = PaymentStatus(
            household_id=household_id,
            from_id=update.from_id,
            to_id=update.to_id,
            expense_id=update.expense_id or None,
            amount=update.amount,
            is_paid=update.is_paid
        )
        db.add(status)

    db.commit()
    db.refresh(status)
    logger.info(f"Payment {payment_status_key(update.from_id, update.to_id, update.expense_id)} "
                f"in household {household_id} marked {'paid' if update.is_paid else 'unpaid'}")
    return status
