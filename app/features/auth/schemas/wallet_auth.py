from datetime import datetime

from pydantic import BaseModel


class ChallengeRequest(BaseModel):
    walletAddress: str | None = None


class ChallengeResponse(BaseModel):
    message: str
    nonce: str
    expiresAt: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "message": "I am signing this message to authenticate with SmartWhales.ai as "
                "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed. Timestamp: 1735689600000. "
                "Nonce: 9f2c4e1a7b3d5f60a1b2c3d4e5f60718",
                "nonce": "9f2c4e1a7b3d5f60a1b2c3d4e5f60718",
                "expiresAt": "2025-01-01T00:05:00Z",
            }
        }
