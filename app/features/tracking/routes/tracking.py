from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.dependencies.verify_wallet import require_verified_wallet
from app.features.tracking.schemas.tracking import TrackingRequest
from app.features.tracking.services.tracking_service import TrackingService
from app.platform.db.session import get_db
from app.platform.exceptions import ValidationError
from app.platform.logger import get_logger
from app.platform.response import api_response
from app.platform.utils.wallet import parse_user_agent

logger = get_logger(__name__)

router = APIRouter(prefix="/tracking", tags=["Tracking"])


def _request_metadata(request_body: TrackingRequest, request: Request) -> dict:
    """Body metadata, with user-agent and client IP filled in from the request."""
    metadata = request_body.metadata.model_dump(exclude_none=True) if request_body.metadata else {}
    metadata.setdefault("userAgent", request.headers.get("user-agent"))
    if request.client:
        metadata.setdefault("ip", request.client.host)

    logger.info(f"Tracking request client: {parse_user_agent(metadata.get('userAgent'))}")
    return metadata


@router.post(
    "/input",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Record a wallet address input",
)
async def track_wallet_input(
    request_body: TrackingRequest,
    request: Request,
    wallet: str = Depends(require_verified_wallet),
    db: AsyncSession = Depends(get_db),
):
    """Record that the verified caller submitted ``trackedAddress``. Never deduplicated."""
    service = TrackingService(db)
    event = await service.record_input(wallet, request_body.trackedAddress, _request_metadata(request_body, request))

    return api_response(
        data={"trackingId": event.id},
        message="Wallet input tracked successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post(
    "/click",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Record a Track button click",
)
async def track_wallet_click(
    request_body: TrackingRequest,
    request: Request,
    wallet: str = Depends(require_verified_wallet),
    db: AsyncSession = Depends(get_db),
):
    """
    Record that the verified caller chose to track ``trackedAddress``.

    Idempotent per (caller, trackedAddress): repeats return 200 with the
    original ``trackingId``.
    """
    service = TrackingService(db)
    event, created = await service.record_track_click(
        wallet, request_body.trackedAddress, _request_metadata(request_body, request)
    )

    if not created:
        return api_response(
            data={"trackingId": event.id},
            message="Wallet already tracked",
            status_code=status.HTTP_200_OK,
        )

    return api_response(
        data={"trackingId": event.id},
        message="Wallet track click recorded successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/stats/{walletAddress}", response_model=dict, summary="Get tracking statistics")
async def get_tracking_stats(walletAddress: str, db: AsyncSession = Depends(get_db)):
    stats = await TrackingService(db).get_stats(walletAddress)
    return api_response(data=stats)


@router.get("/stats", include_in_schema=False)
async def get_tracking_stats_without_wallet():
    raise ValidationError("Wallet address is required", ValidationError.MISSING_FIELD)
