"""
Response Envelopes

Every API response uses the same envelope:
    success: {"success": true, "data": ..., "message": ...}
    error:   {"success": false, "error": "..."}
"""
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


def success_response(data: Any = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    content: Dict[str, Any] = {"success": True}
    if data is not None:
        content["data"] = data
    if message is not None:
        content["message"] = message
    content.update(extra)
    return content


def error_response(
    status_code: int,
    error: str,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any
) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": error}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)
