from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.referral.models.referral import Referral, ReferralStatus
from app.features.users.services.user_service import touch_user
from app.platform.exceptions import StorageError, ValidationError
from app.platform.logger import get_logger
from app.platform.utils.wallet import is_valid_address, normalize_address

logger = get_logger(__name__)


class ReferralService:
    """Service for recording and verifying referrer -> referee connections."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_referral(self, referrer_address: Optional[str], referee: str) -> Tuple[Referral, bool]:
        """
        Record that ``referee`` (the verified caller) joined through
        ``referrer_address``.

        Args:
            referrer_address: Wallet that shared the referral link
            referee: Verified caller

        Returns:
            ``(referral, created)``; an existing pair is returned unchanged
            with ``created=False``.
        """
        referrer = self._require_referrer(referrer_address)
        referee = normalize_address(referee)

        if referrer == referee:
            raise ValidationError("Cannot refer yourself", ValidationError.SELF_REFERRAL)

        try:
            await touch_user(self.db, referrer)
            await touch_user(self.db, referee)

            existing = await self.get_referral(referrer, referee)
            if existing:
                logger.info(f"Referral already recorded: {referrer} -> {referee}")
                return existing, False

            referral = Referral(referrer=referrer, referee=referee, status=ReferralStatus.completed)
            self.db.add(referral)
            try:
                await self.db.commit()
            except IntegrityError:
                # Lost the race against a concurrent insert of the same pair
                await self.db.rollback()
                winner = await self.get_referral(referrer, referee)
                if winner is None:
                    raise
                return winner, False
            await self.db.refresh(referral)
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to log referral {referrer} -> {referee}", exc_info=exc)
            await self.db.rollback()
            raise StorageError("Failed to log referral")

        logger.info(f"Logged referral {referral.id}: {referrer} -> {referee}")
        return referral, True

    async def get_referral_count(self, referrer_address: str) -> dict:
        referrer = normalize_address(referrer_address)
        try:
            result = await self.db.execute(
                select(Referral)
                .where(Referral.referrer == referrer, Referral.status == ReferralStatus.completed)
                .order_by(Referral.timestamp, Referral.id)
            )
            referrals = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to count referrals for {referrer}", exc_info=exc)
            raise StorageError("Failed to get referral count")

        return {
            "count": len(referrals),
            "referrals": [{"referee": r.referee, "timestamp": r.timestamp} for r in referrals],
        }

    async def verify_connection(self, referrer_address: Optional[str], referee: str) -> Optional[Referral]:
        """Completed referral for exactly (referrer, referee), or None. Order matters."""
        referrer = self._require_referrer(referrer_address)
        try:
            return await self.get_referral(referrer, referee, status=ReferralStatus.completed)
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to verify referral {referrer} -> {referee}", exc_info=exc)
            raise StorageError("Failed to verify referral connection")

    async def get_referral(
        self, referrer: str, referee: str, status: Optional[ReferralStatus] = None
    ) -> Optional[Referral]:
        query = select(Referral).where(
            Referral.referrer == normalize_address(referrer),
            Referral.referee == normalize_address(referee),
        )
        if status is not None:
            query = query.where(Referral.status == status)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    def _require_referrer(referrer_address: Optional[str]) -> str:
        if not referrer_address or not str(referrer_address).strip():
            raise ValidationError("Referrer address is required", ValidationError.MISSING_FIELD)
        if not is_valid_address(referrer_address):
            raise ValidationError("Referrer address is not a valid wallet address", ValidationError.INVALID_ADDRESS)
        return normalize_address(referrer_address)
