from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict


class NetSpendingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: str
    total_spent: int
    total_received: int
    total_paid: int
    net_spending: int


class ReportTransferOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_id: str
    to_id: str
    amount: int


class ReportOut(BaseModel):
    month: Optional[str] = None
    expense_count: int
    total: int
    spending: Dict[str, int]
    categories: Dict[str, int]
    balances: Dict[str, int]
    transfers: List[ReportTransferOut]
    net: List[NetSpendingOut]
