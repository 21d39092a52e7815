"""Optional API key check for the JSON service.

TRACTLENS_API_KEYS holds a comma-separated list of accepted keys. When it
is unset the service is open, which is how the dashboard runs locally.
"""

from __future__ import annotations

import os
import secrets
from typing import Optional

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def configured_keys() -> list[str]:
    raw = os.getenv("TRACTLENS_API_KEYS", "")
    return [k.strip() for k in raw.split(",") if k.strip()]


async def verify_api_key(key: Optional[str] = Security(api_key_header)) -> Optional[str]:
    keys = configured_keys()
    if not keys:
        return None
    if key is None or not any(secrets.compare_digest(key, k) for k in keys):
        raise HTTPException(status_code=403, detail="Invalid or missing API key")
    return key
