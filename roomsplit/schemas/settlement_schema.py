from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class BalanceOut(BaseModel):
    roommate_id: str
    name: str
    room: str
    balance: int


class TransferDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    expense_id: str
    description: str
    date: Optional[datetime] = None
    amount: int
    multiplier: Optional[Decimal] = None


class TransferOut(BaseModel):
    from_id: str
    to_id: str
    amount: int
    payment_key: str
    is_paid: bool = False
    details: List[TransferDetailOut] = []


class ExpenseDebtOut(BaseModel):
    from_id: str
    to_id: str
    amount: int
    expense_id: str
    description: str
    date: Optional[datetime] = None
    payment_key: str
    is_paid: bool = False


class MemberDebtOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_id: str
    to_id: str
    amount: int
    details: List[TransferDetailOut] = []


class PaymentStatusUpdate(BaseModel):
    from_id: str
    to_id: str
    expense_id: Optional[str] = None
    amount: int = Field(..., ge=0)
    is_paid: bool


class PaymentStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    household_id: str
    from_id: str
    to_id: str
    expense_id: Optional[str] = None
    amount: int
    is_paid: bool
    created_at: datetime
