"""Protocol interfaces for swappable components.

The revision service references these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory fakes for the GitHub client
- The cache persistence horizon to be chosen by configuration
- Hosts to plug in their own notion of the current user
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ghrevisions.models.cache import CacheEntry
    from ghrevisions.models.github import Committer
    from ghrevisions.models.revision import Revision


class CacheBackendProtocol(Protocol):
    """Key-value storage behind the read-through cache.

    Oblivious to what a key represents. Values are JSON-compatible.
    ``get_entry`` returns ``None`` both on a miss and on a read failure.
    """

    async def get_entry(self, key: str) -> CacheEntry | None: ...

    async def put(self, key: str, value: Any) -> None: ...

    async def begin_operation(self) -> None: ...


class RepositoryClientProtocol(Protocol):
    """Interface for the remote repository API (raw JSON payloads)."""

    async def list_commits(
        self,
        *,
        path: str | None = None,
        sha: str | None = None,
        per_page: int = 100,
        max_pages: int | None = None,
    ) -> list[dict[str, Any]]: ...

    async def get_commit(self, sha: str) -> dict[str, Any]: ...

    async def get_tree(self, sha: str, recursive: bool = True) -> dict[str, Any]: ...

    async def get_blob(self, sha: str) -> dict[str, Any]: ...

    async def create_file(
        self, path: str, content: str, message: str, committer: Committer, branch: str
    ) -> str: ...

    async def update_file(
        self,
        path: str,
        content: str,
        message: str,
        blob_sha: str,
        committer: Committer,
        branch: str,
    ) -> str: ...

    async def delete_file(
        self, path: str, message: str, blob_sha: str, committer: Committer, branch: str
    ) -> str: ...


class IdentityProviderProtocol(Protocol):
    """Supplies the host's currently signed-in user as a field mapping."""

    def current_user(self) -> Mapping[str, str]: ...


class RevisionProvider(Protocol):
    """Capability set a host CMS calls to read and record file history."""

    async def has_revisions(self, file: str) -> bool: ...

    async def get_revisions(self, file: str) -> list[Revision]: ...

    async def get_revision(self, file: str, revision: str) -> str: ...

    async def get_revision_timestamp(self, file: str, revision: str) -> int: ...

    async def get_revision_author(self, file: str, revision: str) -> str: ...

    async def is_revision(self, file: str, revision: str) -> bool: ...

    async def is_latest_revision(self, file: str, revision: str) -> bool: ...

    async def save_revision(
        self,
        file: str,
        content: str,
        message: str,
        *,
        is_new: bool = False,
        moved_from: str | None = None,
    ) -> str: ...

    async def delete_file(self, file: str, message: str | None = None) -> str: ...

    async def delete_revisions(self, file: str) -> None: ...

    async def move_file(self, old_file: str, new_file: str) -> None: ...
