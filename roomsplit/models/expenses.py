import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, Integer, DECIMAL, ForeignKey
from roomsplit.db.database import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    household_id = Column(String, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(200), nullable=False)
    amount = Column(Integer, nullable=False)  # Whole currency units
    paid_by = Column(String, ForeignKey("roommates.id"), nullable=False, index=True)
    created_by = Column(String, nullable=True)  # Missing on expenses recorded before creator tracking
    date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)


class ExpenseShare(Base):
    __tablename__ = "expense_shares"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    expense_id = Column(String, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    roommate_id = Column(String, ForeignKey("roommates.id", ondelete="CASCADE"), nullable=False, index=True)
    multiplier = Column(DECIMAL(10, 2), nullable=False, default=1)
