from typing import Optional

from fastapi import Header

from .exceptions import ValidationFailure

SESSION_HEADER = "X-Session-ID"


def get_session_id(x_session_id: Optional[str] = Header(None, alias=SESSION_HEADER)) -> str:
    """Cart and wishlist are keyed by the session token the client sends."""
    if not x_session_id or not x_session_id.strip():
        raise ValidationFailure(f"{SESSION_HEADER} header is required")
    return x_session_id.strip()
