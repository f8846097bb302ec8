import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.auth_challenge import AuthChallenge
from app.platform.config import settings
from app.platform.exceptions import AuthError, StorageError
from app.platform.logger import get_logger
from app.platform.utils.wallet import generate_signature_message, normalize_address

logger = get_logger(__name__)


class ChallengeService:
    """Issues and redeems single-use sign-in nonces."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def issue(self, wallet_address: str) -> dict:
        wallet_address = normalize_address(wallet_address)
        nonce = secrets.token_hex(16)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=settings.AUTH_CHALLENGE_TTL_SECONDS)

        self.db.add(AuthChallenge(wallet_address=wallet_address, nonce=nonce, expires_at=expires_at))
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to issue auth challenge for {wallet_address}", exc_info=exc)
            await self.db.rollback()
            raise StorageError("Could not issue an authentication challenge at this time.")

        return {
            "message": generate_signature_message(wallet_address, nonce=nonce),
            "nonce": nonce,
            "expiresAt": expires_at,
        }

    async def consume(self, wallet_address: str, nonce: Optional[str]) -> None:
        """
        Mark ``nonce`` used. Fails unless it was issued to ``wallet_address``,
        is unexpired and has not been used before.
        """
        if not nonce:
            raise AuthError(
                "Authentication failed: Signed message must include a server-issued nonce.",
                AuthError.INVALID_CHALLENGE,
            )

        now = datetime.now(timezone.utc)
        stmt = (
            update(AuthChallenge)
            .where(
                AuthChallenge.nonce == nonce,
                AuthChallenge.wallet_address == normalize_address(wallet_address),
                AuthChallenge.used_at.is_(None),
                AuthChallenge.expires_at > now,
            )
            .values(used_at=now)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to redeem auth challenge for {wallet_address}", exc_info=exc)
            await self.db.rollback()
            raise StorageError("Could not verify the authentication challenge at this time.")

        if result.rowcount != 1:
            logger.warning(f"Rejected unknown, expired or reused nonce for {wallet_address}")
            raise AuthError(
                "Authentication failed: Challenge is invalid, expired or already used.",
                AuthError.INVALID_CHALLENGE,
            )
