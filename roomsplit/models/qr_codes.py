import enum
import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, Enum, ForeignKey
from roomsplit.db.database import Base


class QRType(str, enum.Enum):
    momo = "momo"
    bank = "bank"
    zalopay = "zalopay"
    other = "other"


class RoommateQRCode(Base):
    __tablename__ = "roommate_qr_codes"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    household_id = Column(String, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)
    roommate_id = Column(String, ForeignKey("roommates.id", ondelete="CASCADE"), nullable=False, index=True)
    qr_type = Column(Enum(QRType), nullable=False, default=QRType.momo)
    qr_label = Column(String(100), nullable=True)
    qr_image_url = Column(String, nullable=True)  # Stored as given; upload happens elsewhere
    qr_data = Column(String, nullable=True)
    account_number = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
