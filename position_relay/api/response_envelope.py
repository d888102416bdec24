"""
Response Envelope Utilities
===========================
Adds the standard metadata fields (version, timestamp, correlation id) to
HTTP JSON responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


DEFAULT_PROTOCOL_VERSION = "1.0"


@dataclass(frozen=True)
class EnvelopeMeta:
    version: str = DEFAULT_PROTOCOL_VERSION
    add_timestamp: bool = True


def ensure_envelope(message: Dict[str, Any],
                    request_id: Optional[str] = None,
                    meta: EnvelopeMeta = EnvelopeMeta()) -> Dict[str, Any]:
    """
    Ensure the message contains the standard envelope fields.

    Behavior:
    - Adds `version` if missing
    - Adds ISO `timestamp` if missing
    - Echoes `id` if provided and missing in message

    Works on a shallow copy; the input is not modified.
    """
    if not isinstance(message, dict):
        return message

    enriched = dict(message)

    if not enriched.get("version"):
        enriched["version"] = meta.version

    if meta.add_timestamp and not enriched.get("timestamp"):
        enriched["timestamp"] = datetime.now().isoformat()

    if request_id and not enriched.get("id"):
        enriched["id"] = request_id

    return enriched


def json_ok(payload: Dict[str, Any], request_id: Optional[str] = None) -> JSONResponse:
    body = ensure_envelope({"type": "response", "data": payload}, request_id=request_id)
    return JSONResponse(content=body)


def json_error(code: str, message: str, status: int = 400, request_id: Optional[str] = None) -> JSONResponse:
    body = ensure_envelope({
        "type": "error",
        "error_code": code,
        "error_message": message,
    }, request_id=request_id)
    return JSONResponse(content=body, status_code=status)
