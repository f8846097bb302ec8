from sqlalchemy import Column, DateTime, Index, String

from app.platform.db.base import BaseModel


class AuthChallenge(BaseModel):
    """Server-issued sign-in nonce. Single use, short-lived."""
    __tablename__ = "auth_challenges"

    wallet_address = Column(String(42), nullable=False)
    nonce = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_auth_challenges_wallet_created", "wallet_address", "created_at"),
    )
