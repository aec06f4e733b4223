"""
Quorum Backend - Caller Identity
================================

What:  FastAPI dependency that resolves who is calling.
How:   Sign-in is handled by the hosted auth layer in front of this service,
       which forwards the signed-in user's profile id in the X-User-ID header.
       Anonymous requests carry no header and resolve to None; the services
       decide whether an operation needs a caller (→ 401).
"""

from typing import Optional
from uuid import UUID

from fastapi import Header

from quorum.exceptions import ValidationError

USER_ID_HEADER = "X-User-ID"


async def get_current_user_id(
    x_user_id: Optional[str] = Header(
        default=None,
        alias=USER_ID_HEADER,
        description="Profile id of the signed-in user, set by the auth proxy",
    ),
) -> Optional[UUID]:
    if x_user_id is None or not x_user_id.strip():
        return None
    try:
        return UUID(x_user_id.strip())
    except ValueError:
        raise ValidationError(message="Malformed user id header", field=USER_ID_HEADER)
