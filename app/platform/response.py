from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: Optional[str] = None,
    error: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """
    Single source of truth for ALL API responses.

    Body is always ``{success, message?, data?, error?}``; ``success`` is
    derived from the status code (< 400).
    """
    content: dict = {"success": status_code < 400}
    if message is not None:
        content["message"] = message
    if data is not None:
        content["data"] = jsonable_encoder(data)
    if error is not None:
        content["error"] = error

    return JSONResponse(status_code=status_code, content=content, headers=headers)
