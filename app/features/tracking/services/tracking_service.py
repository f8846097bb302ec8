from typing import Optional, Tuple

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.tracking.models.tracking_event import TrackingEvent, TrackingEventType
from app.features.users.services.user_service import touch_user
from app.platform.exceptions import StorageError, ValidationError
from app.platform.logger import get_logger
from app.platform.utils.wallet import is_valid_address, normalize_address

logger = get_logger(__name__)


def _require_address(value: Optional[str], label: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{label} is required", ValidationError.MISSING_FIELD)
    if not is_valid_address(value):
        raise ValidationError(f"{label} is not a valid wallet address", ValidationError.INVALID_ADDRESS)
    return normalize_address(value)


class TrackingService:
    """Records wallet-tracking interactions and reports per-wallet stats."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_input(
        self, actor: str, tracked_address: Optional[str], metadata: Optional[dict] = None
    ) -> TrackingEvent:
        """Persist an ``input`` event. Every call inserts a new row."""
        actor = normalize_address(actor)
        subject = _require_address(tracked_address, "Tracked address")

        try:
            await touch_user(self.db, actor)
            event = self._build_event(actor, subject, TrackingEventType.input, metadata)
            self.db.add(event)
            await self.db.commit()
            await self.db.refresh(event)
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to record input {actor} -> {subject}", exc_info=exc)
            await self.db.rollback()
            raise StorageError("Failed to track wallet input")

        logger.info(f"Recorded input event {event.id}: {actor} -> {subject}")
        return event

    async def record_track_click(
        self, actor: str, tracked_address: Optional[str], metadata: Optional[dict] = None
    ) -> Tuple[TrackingEvent, bool]:
        """
        Persist a ``track`` event once per (actor, subject) pair.

        Returns ``(event, created)``. When the pair is already tracked the
        existing event is returned and nothing is written.
        """
        actor = normalize_address(actor)
        subject = _require_address(tracked_address, "Tracked address")

        try:
            existing = await self.get_track_event(actor, subject)
            if existing:
                logger.info(f"Wallet {subject} already tracked by {actor} ({existing.id})")
                return existing, False

            await touch_user(self.db, actor)
            event = self._build_event(actor, subject, TrackingEventType.track, metadata)
            self.db.add(event)
            try:
                await self.db.commit()
            except IntegrityError:
                # A concurrent request inserted the same pair first
                await self.db.rollback()
                winner = await self.get_track_event(actor, subject)
                if winner is None:
                    raise
                logger.info(f"Track event race resolved for {actor} -> {subject} ({winner.id})")
                return winner, False
            await self.db.refresh(event)
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to record track click {actor} -> {subject}", exc_info=exc)
            await self.db.rollback()
            raise StorageError("Failed to track wallet click")

        logger.info(f"Recorded track event {event.id}: {actor} -> {subject}")
        return event, True

    async def get_track_event(self, actor: str, subject: str) -> Optional[TrackingEvent]:
        result = await self.db.execute(
            select(TrackingEvent).where(
                TrackingEvent.wallet_address == normalize_address(actor),
                TrackingEvent.tracked_address == normalize_address(subject),
                TrackingEvent.event_type == TrackingEventType.track,
            )
        )
        return result.scalars().first()

    async def get_stats(self, wallet_address: Optional[str]) -> dict:
        if not wallet_address or not wallet_address.strip():
            raise ValidationError("Wallet address is required", ValidationError.MISSING_FIELD)
        wallet = normalize_address(wallet_address)

        try:
            counts = await self.db.execute(
                select(TrackingEvent.event_type, func.count(TrackingEvent.id))
                .where(TrackingEvent.wallet_address == wallet)
                .group_by(TrackingEvent.event_type)
            )
            by_type = {row[0]: row[1] for row in counts.all()}

            unique_tracked = await self.db.execute(
                select(func.count(distinct(TrackingEvent.tracked_address))).where(
                    TrackingEvent.wallet_address == wallet
                )
            )
            unique_wallets_tracked = unique_tracked.scalar_one()
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to compute tracking stats for {wallet}", exc_info=exc)
            raise StorageError("Failed to get tracking statistics")

        return {
            "inputCount": by_type.get(TrackingEventType.input, 0),
            "trackCount": by_type.get(TrackingEventType.track, 0),
            "uniqueWalletsTracked": unique_wallets_tracked,
        }

    @staticmethod
    def _build_event(
        actor: str, subject: str, event_type: TrackingEventType, metadata: Optional[dict]
    ) -> TrackingEvent:
        metadata = metadata or {}
        return TrackingEvent(
            wallet_address=actor,
            tracked_address=subject,
            event_type=event_type,
            chain_id=metadata.get("chainId"),
            user_agent=(metadata.get("userAgent") or "")[:500] or None,
            ip=metadata.get("ip"),
        )
