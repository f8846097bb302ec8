from fastapi import APIRouter
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check():
    # Bare body; load balancers and uptime checks match on it exactly
    return JSONResponse(status_code=200, content={"status": "ok"})
