from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Revision(BaseModel):
    """One committed version of one file."""

    model_config = ConfigDict(frozen=True)

    id: str  # Commit SHA
    message: str
    timestamp: int  # Seconds since epoch, from the commit's author date
    author: str  # Committer display name
    is_current: bool = False  # Derived per read: newest revision of the file
