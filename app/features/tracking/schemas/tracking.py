from typing import Optional, Union

from pydantic import BaseModel, field_validator


class TrackingMetadata(BaseModel):
    chainId: Optional[Union[str, int]] = None
    userAgent: Optional[str] = None
    ip: Optional[str] = None

    @field_validator("chainId")
    @classmethod
    def chain_id_as_string(cls, value):
        return None if value is None else str(value)


class TrackingRequest(BaseModel):
    """
    Body of ``/tracking/input`` and ``/tracking/click``.

    ``walletAddress``, ``signature`` and ``message`` are consumed by the
    auth dependency; the actor is always the verified caller.
    """
    trackedAddress: Optional[str] = None
    metadata: Optional[TrackingMetadata] = None

    class Config:
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "walletAddress": "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed",
                "signature": "0x…",
                "message": "I am signing this message to authenticate with SmartWhales.ai as …",
                "trackedAddress": "0xfb6916095ca1df60bb79ce92ce3ea74c37c5d359",
                "metadata": {"chainId": "1"},
            }
        }


class TrackingStatsResponse(BaseModel):
    inputCount: int
    trackCount: int
    uniqueWalletsTracked: int
