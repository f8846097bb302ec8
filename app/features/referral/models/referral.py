import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, String, UniqueConstraint, func

from app.platform.db.base import BaseModel


class ReferralStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"


class Referral(BaseModel):
    """
    Referrer -> referee connection, recorded once per ordered pair.

    Both addresses are stored lowercase so the unique constraint is
    effectively case-insensitive.
    """
    __tablename__ = "referrals"

    referrer = Column(String(42), nullable=False, index=True)
    referee = Column(String(42), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    status = Column(
        Enum(ReferralStatus, name="referral_status", native_enum=False, length=10),
        default=ReferralStatus.completed,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("referrer", "referee", name="uq_referral_pair"),
        CheckConstraint("referrer <> referee", name="ck_referral_not_self"),
    )
