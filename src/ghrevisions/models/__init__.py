from __future__ import annotations

from ghrevisions.models.cache import CacheEntry
from ghrevisions.models.github import Blob, CommitMetadata, Committer, TreeEntry
from ghrevisions.models.revision import Revision

__all__ = [
    # revisions
    "Revision",
    # github
    "Blob",
    "CommitMetadata",
    "Committer",
    "TreeEntry",
    # cache
    "CacheEntry",
]
