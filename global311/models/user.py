from __future__ import annotations

from pydantic import BaseModel


class Caller(BaseModel):
    """Authenticated identity an engine operation is attributed to."""

    id: str
    is_admin: bool = False
