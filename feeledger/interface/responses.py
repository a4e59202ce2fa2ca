"""Mini README: JSON envelope helpers shared by every router.

Every response body is ``{"success": bool, "message"?: str, "data"?: any}``;
``message`` and ``data`` are omitted when there is nothing to say.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fastapi.responses import JSONResponse


def envelope(success: bool, *, message: Optional[str] = None, data: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def respond(
    data: Any = None, *, message: Optional[str] = None, status_code: int = 200
) -> JSONResponse:
    return JSONResponse(envelope(True, message=message, data=data), status_code=status_code)


def failure(
    message: str,
    *,
    status_code: int,
    errors: Optional[Mapping[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = envelope(False, message=message)
    if errors:
        body["errors"] = dict(errors)
    return JSONResponse(body, status_code=status_code, headers=headers)
