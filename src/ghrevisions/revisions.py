"""GitHub-backed revision history for CMS content files.

Every public method is one operation: it opens a fresh operation scope on
both caches, normalizes its path argument against the content root and then
reads through the caches to the GitHub API.

Two caches are kept apart on purpose:

- ``history`` holds lookups whose answer changes as commits land (the commit
  list of a path, the head of the branch). It is always operation-scoped.
- ``objects`` holds commits, trees and blobs. Those are immutable, so this
  cache uses whichever backend the host configured, durable or not.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from ghrevisions.cache import MemoryCache, ReadThroughCache, make_cache_key
from ghrevisions.committer import build_committer
from ghrevisions.config import require_repository
from ghrevisions.errors import ErrorCode, NotFoundError
from ghrevisions.github import decode_blob_content
from ghrevisions.models.github import Blob, CommitMetadata, TreeEntry
from ghrevisions.models.revision import Revision
from ghrevisions.paths import normalize

if TYPE_CHECKING:
    from ghrevisions.config import Settings
    from ghrevisions.models.github import Committer
    from ghrevisions.protocols import (
        CacheBackendProtocol,
        IdentityProviderProtocol,
        RepositoryClientProtocol,
    )

log = structlog.get_logger()


class GitHubRevisions:
    """RevisionProvider storing every saved version as a GitHub commit."""

    def __init__(
        self,
        client: RepositoryClientProtocol,
        settings: Settings,
        *,
        identity: IdentityProviderProtocol,
        cache_backend: CacheBackendProtocol | None = None,
    ) -> None:
        require_repository(settings)

        self._client = client
        self._settings = settings
        self._identity = identity
        self._branch = settings.github.branch
        self._history = ReadThroughCache(MemoryCache())
        if cache_backend is None:
            cache_backend = MemoryCache()
        self._objects = ReadThroughCache(cache_backend)

    def standardize(self, file: str) -> str:
        """Map a content-relative file onto its repository path."""
        return normalize(self._settings.content.content_root, file)

    async def _begin(self) -> None:
        await self._history.begin_operation()
        await self._objects.begin_operation()

    # ------------------------------------------------------------------
    # Cached lookups
    # ------------------------------------------------------------------

    async def _get_commits(self, path: str) -> list[dict[str, Any]]:
        """Commit summaries touching ``path``, newest first."""
        return await self._history.get_or_compute(
            make_cache_key("commits/", path),
            lambda: self._client.list_commits(path=path, sha=self._branch),
        )

    async def _get_latest_tree_sha(self) -> str:
        commits = await self._history.get_or_compute(
            make_cache_key("head/", self._branch),
            lambda: self._client.list_commits(sha=self._branch, per_page=1, max_pages=1),
        )
        if not commits:
            raise NotFoundError(
                code=ErrorCode.REVISION_NOT_FOUND,
                message=f"Branch '{self._branch}' has no commits",
                suggestion="Create an initial commit on the configured branch.",
                recoverable=False,
            )
        return commits[0]["commit"]["tree"]["sha"]

    async def _get_commit(self, sha: str) -> CommitMetadata:
        async def fetch() -> dict[str, Any]:
            payload = await self._client.get_commit(sha)
            # Drop the per-file patches; only the commit header is read
            return {"sha": payload["sha"], "commit": payload["commit"]}

        payload = await self._objects.get_or_compute(make_cache_key("commit/", sha), fetch)
        return CommitMetadata.from_api(payload)

    async def _get_tree(self, sha: str) -> list[TreeEntry]:
        tree = await self._objects.get_or_compute(
            make_cache_key("tree/", sha),
            lambda: self._client.get_tree(sha, recursive=True),
        )
        return [TreeEntry.model_validate(entry) for entry in tree.get("tree", [])]

    async def _find_blob(self, path: str, tree_sha: str) -> Blob | None:
        """Resolve ``path`` inside a tree. Returns ``None`` if the tree has no such file."""
        entries = await self._get_tree(tree_sha)
        blob_sha = next(
            (entry.sha for entry in entries if entry.type == "blob" and entry.path == path),
            None,
        )
        if blob_sha is None:
            return None

        async def fetch() -> dict[str, Any]:
            raw = await self._client.get_blob(blob_sha)
            blob = Blob(
                path=path,
                sha=blob_sha,
                tree_sha=tree_sha,
                content=decode_blob_content(raw),
            )
            return blob.model_dump()

        cached = await self._objects.get_or_compute(make_cache_key("blobs/", path, tree_sha), fetch)
        return Blob.model_validate(cached)

    async def _require_blob(self, path: str, tree_sha: str, suggestion: str) -> Blob:
        blob = await self._find_blob(path, tree_sha)
        if blob is None:
            raise NotFoundError(
                code=ErrorCode.PATH_NOT_FOUND,
                message=f"'{path}' does not exist in tree {tree_sha}",
                suggestion=suggestion,
                recoverable=False,
            )
        return blob

    async def _list_revisions(self, path: str) -> list[Revision]:
        # Remote order is authoritative; never re-sorted
        revisions: list[Revision] = []
        for index, payload in enumerate(await self._get_commits(path)):
            commit = CommitMetadata.from_api(payload)
            revisions.append(
                Revision(
                    id=commit.sha,
                    message=commit.message,
                    timestamp=commit.timestamp,
                    author=commit.committer_name,
                    is_current=index == 0,
                )
            )
        return revisions

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def has_revisions(self, file: str) -> bool:
        await self._begin()
        return bool(await self._get_commits(self.standardize(file)))

    async def get_revisions(self, file: str) -> list[Revision]:
        await self._begin()
        path = self.standardize(file)
        revisions = await self._list_revisions(path)
        log.info("revisions_listed", path=path, count=len(revisions))
        return revisions

    async def is_revision(self, file: str, revision: str) -> bool:
        await self._begin()
        commits = await self._get_commits(self.standardize(file))
        return any(commit["sha"] == revision for commit in commits)

    async def is_latest_revision(self, file: str, revision: str) -> bool:
        await self._begin()
        revisions = await self._list_revisions(self.standardize(file))
        return bool(revisions) and revisions[0].id == revision

    async def get_revision(self, file: str, revision: str) -> str:
        """Return the decoded content of ``file`` as of commit ``revision``."""
        await self._begin()
        path = self.standardize(file)
        commit = await self._get_commit(revision)
        blob = await self._require_blob(
            path,
            commit.tree_sha,
            suggestion=f"The file did not exist at revision {revision}.",
        )
        return blob.content

    async def get_revision_timestamp(self, file: str, revision: str) -> int:
        await self._begin()
        commit = await self._get_commit(revision)
        return commit.timestamp

    async def get_revision_author(self, file: str, revision: str) -> str:
        await self._begin()
        commit = await self._get_commit(revision)
        return commit.committer_name

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _committer(self) -> Committer:
        settings = self._settings.committer
        return build_committer(self._identity.current_user(), settings.name, settings.email)

    def _prefixed(self, text: str) -> str:
        return f"{self._settings.content.message_prefix} {text}".strip()

    async def _delete_path(self, path: str, message: str, committer: Committer) -> str:
        tree_sha = await self._get_latest_tree_sha()
        blob = await self._require_blob(
            path,
            tree_sha,
            suggestion="Only files present on the configured branch can be deleted.",
        )
        return await self._client.delete_file(path, message, blob.sha, committer, self._branch)

    async def save_revision(
        self,
        file: str,
        content: str,
        message: str,
        *,
        is_new: bool = False,
        moved_from: str | None = None,
    ) -> str:
        """Commit ``content`` as the next version of ``file`` and return the commit SHA.

        A new file (or one being saved under a new name, ``moved_from``) is
        created without a prior blob reference. An existing file is updated
        against the blob SHA currently on the branch, so GitHub rejects the
        write if someone else committed in between.
        """
        await self._begin()
        path = self.standardize(file)
        bound = log.bind(path=path)
        committer = self._committer()

        if moved_from is not None:
            old_path = self.standardize(moved_from)
            await self._delete_path(old_path, self._prefixed("File renamed"), committer)
            bound.info("revision_file_moved", old_path=old_path)

        if is_new or moved_from is not None:
            revision = await self._client.create_file(
                path, content, message, committer, self._branch
            )
        else:
            tree_sha = await self._get_latest_tree_sha()
            blob = await self._require_blob(
                path,
                tree_sha,
                suggestion="Save the file as new (is_new=True) if it is not in the repository yet.",
            )
            revision = await self._client.update_file(
                path, content, message, blob.sha, committer, self._branch
            )

        bound.info("revision_saved", revision=revision, is_new=is_new or moved_from is not None)
        return revision

    async def delete_file(self, file: str, message: str | None = None) -> str:
        """Remove ``file`` from the branch with a commit; history is kept."""
        await self._begin()
        path = self.standardize(file)
        revision = await self._delete_path(
            path,
            message or self._prefixed("File deleted"),
            self._committer(),
        )
        log.info("revision_file_deleted", path=path, revision=revision)
        return revision

    async def delete_revisions(self, file: str) -> None:
        # History lives in git; rewriting it is not supported
        log.warning(
            "revisions_operation_unsupported",
            operation="delete_revisions",
            path=self.standardize(file),
        )

    async def move_file(self, old_file: str, new_file: str) -> None:
        # Renames are recorded by save_revision(moved_from=...)
        log.warning(
            "revisions_operation_unsupported",
            operation="move_file",
            old_path=self.standardize(old_file),
            new_path=self.standardize(new_file),
        )
