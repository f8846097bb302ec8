from fastapi import APIRouter

from app.features.auth.routes.wallet_auth import router as wallet_auth_router
from app.features.referral.routes.referral import router as referral_router
from app.features.tracking.routes.tracking import router as tracking_router

api_router = APIRouter()

# Register all feature routes
api_router.include_router(wallet_auth_router)
api_router.include_router(tracking_router)
api_router.include_router(referral_router)
