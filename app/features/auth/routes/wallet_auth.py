from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.schemas.wallet_auth import ChallengeRequest, ChallengeResponse
from app.features.auth.services.challenge_service import ChallengeService
from app.platform.db.session import get_db
from app.platform.exceptions import ValidationError
from app.platform.response import api_response
from app.platform.utils.wallet import generate_signature_message, is_valid_address, normalize_address

router = APIRouter(prefix="/auth", tags=["Wallet Auth"])


def _require_wallet(wallet_address: str | None) -> str:
    if not wallet_address:
        raise ValidationError("Wallet address is required", ValidationError.MISSING_FIELD)
    if not is_valid_address(wallet_address):
        raise ValidationError("Invalid wallet address", ValidationError.INVALID_ADDRESS)
    return normalize_address(wallet_address)


@router.post(
    "/challenge",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a single-use sign-in challenge",
)
async def issue_challenge(request_body: ChallengeRequest, db: AsyncSession = Depends(get_db)):
    """
    Issue a server-side nonce for a wallet and return the message to sign.

    The signed message is accepted once, before ``expiresAt``.
    """
    wallet = _require_wallet(request_body.walletAddress)
    challenge = await ChallengeService(db).issue(wallet)

    return api_response(
        data=ChallengeResponse(**challenge),
        message="Challenge issued",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/message/{walletAddress}", response_model=dict, summary="Get a message to sign")
async def get_signature_message(walletAddress: str):
    wallet = _require_wallet(walletAddress)
    return api_response(data={"message": generate_signature_message(wallet)})
