import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey
from roomsplit.db.database import Base


class PaymentStatus(Base):
    """Paid flag of a computed transfer, or of one expense debt when expense_id is set"""
    __tablename__ = "payment_statuses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    household_id = Column(String, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)
    from_id = Column(String, nullable=False, index=True)  # Roommate id
    to_id = Column(String, nullable=False, index=True)  # Roommate id
    expense_id = Column(String, nullable=True, index=True)
    amount = Column(Integer, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
