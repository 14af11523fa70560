from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class ExpenseShareBase(BaseModel):
    roommate_id: str
    multiplier: Decimal = Field(Decimal("1"), gt=0, max_digits=10, decimal_places=2)  # Matches DECIMAL(10, 2)


class ExpenseShareCreate(ExpenseShareBase):
    pass


class ExpenseShareOut(ExpenseShareBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    expense_id: str


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    paid_by: str
    # Empty means everyone in the payer's room
    shares: List[ExpenseShareCreate] = []


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    household_id: str
    description: str
    amount: int
    paid_by: str
    created_by: Optional[str] = None
    date: datetime


class ExpenseWithShares(ExpenseOut):
    shares: List[ExpenseShareOut] = []
