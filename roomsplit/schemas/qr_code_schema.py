from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional
from datetime import datetime
from roomsplit.models.qr_codes import QRType


class QRCodeCreate(BaseModel):
    roommate_id: str
    qr_type: QRType = QRType.momo
    qr_label: Optional[str] = Field(None, max_length=100)
    qr_image_url: Optional[str] = None
    qr_data: Optional[str] = None
    account_number: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def require_image_or_account(self):
        if not self.qr_image_url and not self.account_number:
            raise ValueError("Either qr_image_url or account_number must be provided")
        return self


class AccountNumberUpdate(BaseModel):
    account_number: str = Field(..., min_length=1, max_length=64)
    bank: Optional[str] = Field(None, max_length=100)


class QRCodeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    household_id: str
    roommate_id: str
    qr_type: QRType
    qr_label: Optional[str] = None
    qr_image_url: Optional[str] = None
    qr_data: Optional[str] = None
    account_number: Optional[str] = None
    created_at: datetime
