"""Response envelope shared by every handler."""
from __future__ import annotations

import json
from typing import Any, Dict

from .models import Err

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
}


def build_response(status_code: int, payload: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(DEFAULT_HEADERS),
        "body": json.dumps(payload),
    }


def error_response(error: Err, status_code: int | None = None) -> Dict[str, Any]:
    """Wrap a failed result, defaulting the status to the error's category."""

    return build_response(status_code or error.kind.status_code, {"message": error.message})


__all__ = ["DEFAULT_HEADERS", "build_response", "error_response"]
