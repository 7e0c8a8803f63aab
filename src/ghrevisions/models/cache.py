from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """A memoized remote lookup as persisted by the durable cache."""

    key: str  # "<namespace>/<sha256 of lookup params>"
    value: Any  # JSON-compatible payload
    stored_at: datetime
