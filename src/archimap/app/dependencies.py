"""Shared dependencies for the archimap application."""

from typing import Optional

from fastapi import Header

from .services.search_history import HeaderSessionContext


async def get_session_context(x_session_id: Optional[str] = Header(default=None)) -> HeaderSessionContext:
    """Session used to attribute recorded searches; anonymous when the header is absent."""
    if x_session_id and x_session_id.strip():
        return HeaderSessionContext(session_id=x_session_id.strip())
    return HeaderSessionContext()
