from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.dependencies.verify_wallet import require_verified_wallet
from app.features.referral.schemas.referral import (
    ReferralCountResponse,
    ReferralOut,
    ReferralRequest,
    ReferralVerifyResponse,
)
from app.features.referral.services.referral_service import ReferralService
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/referral", tags=["Referral"])


@router.post(
    "/log",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Log a referral connection",
)
async def log_referral(
    request_body: ReferralRequest,
    wallet: str = Depends(require_verified_wallet),
    db: AsyncSession = Depends(get_db),
):
    """
    Log that the verified caller connected through ``referrerAddress``'s link.

    Returns 201 for a new connection, 200 with the stored record if the pair
    was already logged.
    """
    referral, created = await ReferralService(db).log_referral(request_body.referrerAddress, wallet)

    if not created:
        return api_response(
            data=ReferralOut.model_validate(referral),
            message="Referral already recorded",
            status_code=status.HTTP_200_OK,
        )

    return api_response(
        data=ReferralOut.model_validate(referral),
        message="Referral logged successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/count/{walletAddress}", response_model=dict, summary="Get referral count")
async def get_referral_count(walletAddress: str, db: AsyncSession = Depends(get_db)):
    data = await ReferralService(db).get_referral_count(walletAddress)
    return api_response(data=ReferralCountResponse(**data))


@router.post("/verify", response_model=dict, summary="Verify a referral connection")
async def verify_referral_connection(
    request_body: ReferralRequest,
    wallet: str = Depends(require_verified_wallet),
    db: AsyncSession = Depends(get_db),
):
    """Check whether the verified caller was referred by ``referrerAddress``."""
    referral = await ReferralService(db).verify_connection(request_body.referrerAddress, wallet)

    return api_response(
        data=ReferralVerifyResponse(
            isReferred=referral is not None,
            referral=ReferralOut.model_validate(referral) if referral else None,
        )
    )
