from sqlalchemy import Column, DateTime, String, func

from app.platform.db.base import BaseModel


class WalletUser(BaseModel):
    """
    Implicit user record keyed by wallet address.

    Created or refreshed as a side effect of tracking and referral calls,
    never deleted.
    """
    __tablename__ = "wallet_users"

    wallet_address = Column(String(42), unique=True, nullable=False, index=True)
    last_seen = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<WalletUser(wallet_address={self.wallet_address}, last_seen={self.last_seen})>"
