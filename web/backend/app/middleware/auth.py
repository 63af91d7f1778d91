"""Caller identity -- FastAPI dependencies for extracting who is calling.

Authentication itself is the job of whatever sits in front of this API
(gateway, wallet-signature proxy). It forwards the verified identity in the
``X-Caller`` header.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status


async def get_caller(x_caller: Optional[str] = Header(None, alias="X-Caller")) -> str:
    """FastAPI dependency returning the caller identity.

    Raises ``401 Unauthorized`` if the header is missing or blank.
    """
    if x_caller is None or not x_caller.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Caller header",
        )
    return x_caller.strip()
