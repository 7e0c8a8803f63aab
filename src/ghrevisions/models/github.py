"""Typed views over GitHub REST API payloads.

The client and the caches pass raw JSON around; these models are built from
that JSON at the point where the service needs typed fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class TreeEntry(BaseModel):
    """Single entry of a recursive tree listing."""

    path: str
    sha: str
    type: str = "blob"


class Blob(BaseModel):
    """Decoded file content for one path at one tree."""

    model_config = ConfigDict(frozen=True)

    path: str
    sha: str  # Blob SHA, referenced by update/delete commits
    tree_sha: str  # Tree the blob was resolved from
    content: str  # Always decoded text, never base64


class CommitMetadata(BaseModel):
    """The fields of a commit the revision service reads."""

    sha: str
    message: str
    author_date: datetime
    committer_name: str
    tree_sha: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> CommitMetadata:
        """Build from a ``GET /commits`` list item or ``GET /commits/{sha}`` body."""
        commit = payload["commit"]
        return cls(
            sha=payload["sha"],
            message=commit["message"],
            author_date=commit["author"]["date"],
            committer_name=commit["committer"]["name"],
            tree_sha=commit["tree"]["sha"],
        )

    @property
    def timestamp(self) -> int:
        return int(self.author_date.timestamp())


class Committer(BaseModel):
    """Committer identity attached to every write."""

    name: str
    email: str
    date: str  # ISO 8601
