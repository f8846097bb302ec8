import enum

from sqlalchemy import Column, DateTime, Enum, Index, String, func, text

from app.platform.db.base import BaseModel


class TrackingEventType(str, enum.Enum):
    input = "input"  # the actor typed/submitted an address
    track = "track"  # the actor confirmed intent to track it


class TrackingEvent(BaseModel):
    __tablename__ = "tracking_events"

    wallet_address = Column(String(42), nullable=False)
    tracked_address = Column(String(42), nullable=False)
    event_type = Column(
        Enum(TrackingEventType, name="tracking_event_type", native_enum=False, length=10),
        nullable=False,
    )
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Descriptive only
    chain_id = Column(String(32), nullable=True)
    user_agent = Column(String(500), nullable=True)
    ip = Column(String(45), nullable=True)  # IPv4 or IPv6

    __table_args__ = (
        Index("idx_tracking_wallet_tracked_type", "wallet_address", "tracked_address", "event_type"),
        # At most one "track" event per actor/subject pair
        Index(
            "uq_tracking_track_pair",
            "wallet_address",
            "tracked_address",
            unique=True,
            postgresql_where=text("event_type = 'track'"),
            sqlite_where=text("event_type = 'track'"),
        ),
    )

    @property
    def metadata_dict(self) -> dict:
        return {
            key: value
            for key, value in (("chainId", self.chain_id), ("userAgent", self.user_agent), ("ip", self.ip))
            if value is not None
        }
