"""Notification schemas"""

from typing import Optional
from pydantic import BaseModel


class DispatchResult(BaseModel):
    """Outcome of a best-effort dispatch; failures are only logged"""
    channel: str
    ok: bool
    error: Optional[str] = None
    skipped: bool = False
