import json

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.services.challenge_service import ChallengeService
from app.features.auth.services.signature import verify_wallet_signature
from app.platform.config import settings
from app.platform.db.session import get_db
from app.platform.utils.wallet import extract_nonce


async def _read_body(request: Request) -> dict:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return payload if isinstance(payload, dict) else {}


async def get_verified_wallet(request: Request) -> str:
    """
    Authenticate the request from ``walletAddress``/``signature``/``message``
    in the JSON body.

    The recovered address is stored on ``request.state.verified_wallet`` and
    returned. No database access.
    """
    payload = await _read_body(request)
    message = payload.get("message")
    wallet = verify_wallet_signature(payload.get("walletAddress"), message, payload.get("signature"))

    request.state.verified_wallet = wallet
    request.state.signed_message = message
    return wallet


async def require_verified_wallet(
    request: Request,
    wallet: str = Depends(get_verified_wallet),
    db: AsyncSession = Depends(get_db),
) -> str:
    """``get_verified_wallet`` plus single-use nonce redemption when enabled."""
    if settings.AUTH_REQUIRE_CHALLENGE:
        await ChallengeService(db).consume(wallet, extract_nonce(request.state.signed_message))
    return wallet
