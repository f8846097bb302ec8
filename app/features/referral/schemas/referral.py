from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.features.referral.models.referral import ReferralStatus


class ReferralRequest(BaseModel):
    """
    Body of ``/referral/log`` and ``/referral/verify``.

    The referee is always the verified caller, taken from the auth fields.
    """
    referrerAddress: Optional[str] = None

    class Config:
        extra = "ignore"


class ReferralOut(BaseModel):
    id: str
    referrer: str
    referee: str
    timestamp: datetime
    status: ReferralStatus

    class Config:
        from_attributes = True


class RefereeEntry(BaseModel):
    referee: str
    timestamp: datetime

    class Config:
        from_attributes = True


class ReferralCountResponse(BaseModel):
    count: int
    referrals: List[RefereeEntry]


class ReferralVerifyResponse(BaseModel):
    isReferred: bool
    referral: Optional[ReferralOut]
