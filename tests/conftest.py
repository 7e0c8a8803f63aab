"""Shared test fixtures for the ghrevisions test suite."""

from __future__ import annotations

import base64
import copy
import hashlib
from collections import Counter
from typing import TYPE_CHECKING, Any

import aiosqlite
import pytest

from ghrevisions.cache import SQLiteCache
from ghrevisions.committer import StaticIdentity
from ghrevisions.config import ContentSettings, GitHubSettings, Settings
from ghrevisions.errors import ErrorCode, NotFoundError, RemoteError
from ghrevisions.revisions import GitHubRevisions

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from ghrevisions.models.github import Committer


class FakeRepository:
    """In-memory stand-in for GitHubClient with git-like semantics.

    Commits are kept newest first. Every commit snapshots the full tree so
    historical lookups behave like the real API.
    """

    def __init__(self) -> None:
        self.commits: list[dict[str, Any]] = []
        self.changed: dict[str, set[str]] = {}  # commit sha -> paths touched
        self.trees: dict[str, dict[str, str]] = {}  # tree sha -> {path: blob sha}
        self.blobs: dict[str, str] = {}  # blob sha -> content
        self.files: dict[str, str] = {}  # path -> blob sha on the branch
        self.calls: Counter[str] = Counter()
        self.failures: dict[str, Exception] = {}  # method -> exception raised once
        self.last_committer: Committer | None = None

    # -- helpers -------------------------------------------------------

    @staticmethod
    def _sha(*parts: str) -> str:
        return hashlib.sha1("\0".join(parts).encode("utf-8")).hexdigest()

    def _enter(self, method: str) -> None:
        self.calls[method] += 1
        exc = self.failures.pop(method, None)
        if exc is not None:
            raise exc

    def commit(
        self,
        changes: dict[str, str | None],
        message: str,
        author: str = "Ada Lovelace",
        committer: str | None = None,
    ) -> str:
        """Record a commit. A ``None`` content deletes the path."""
        for path, content in changes.items():
            if content is None:
                self.files.pop(path, None)
                continue
            blob_sha = self._sha("blob", content)
            self.blobs[blob_sha] = content
            self.files[path] = blob_sha

        tree_sha = self._sha("tree", *sorted(f"{p}={s}" for p, s in self.files.items()))
        self.trees[tree_sha] = dict(self.files)

        index = len(self.commits)
        sha = self._sha("commit", str(index), message)
        date = f"2024-05-01T10:{index:02d}:00Z"
        self.commits.insert(
            0,
            {
                "sha": sha,
                "commit": {
                    "message": message,
                    "author": {"name": author, "email": "ada@example.com", "date": date},
                    "committer": {
                        "name": committer or author,
                        "email": "ada@example.com",
                        "date": date,
                    },
                    "tree": {"sha": tree_sha},
                },
            },
        )
        self.changed[sha] = set(changes)
        return sha

    # -- RepositoryClientProtocol -------------------------------------

    async def list_commits(
        self,
        *,
        path: str | None = None,
        sha: str | None = None,
        per_page: int = 100,
        max_pages: int | None = None,
    ) -> list[dict[str, Any]]:
        self._enter("list_commits")
        commits = [c for c in self.commits if path is None or path in self.changed[c["sha"]]]
        if max_pages is not None:
            commits = commits[: per_page * max_pages]
        return copy.deepcopy(commits)

    async def get_commit(self, sha: str) -> dict[str, Any]:
        self._enter("get_commit")
        for commit in self.commits:
            if commit["sha"] == sha:
                payload = copy.deepcopy(commit)
                payload["files"] = [{"filename": p} for p in sorted(self.changed[sha])]
                return payload
        raise NotFoundError(
            code=ErrorCode.REVISION_NOT_FOUND,
            message=f"Not found: commit {sha}",
            suggestion="",
        )

    async def get_tree(self, sha: str, recursive: bool = True) -> dict[str, Any]:
        self._enter("get_tree")
        files = self.trees[sha]
        directories = {
            "/".join(path.split("/")[:depth])
            for path in files
            for depth in range(1, path.count("/") + 1)
        }
        entries = [
            {"path": directory, "sha": self._sha("dir", sha, directory), "type": "tree"}
            for directory in directories
        ]
        entries += [
            {"path": path, "sha": blob_sha, "type": "blob", "mode": "100644"}
            for path, blob_sha in files.items()
        ]
        entries.sort(key=lambda entry: entry["path"])
        return {"sha": sha, "tree": entries, "truncated": False}

    async def get_blob(self, sha: str) -> dict[str, Any]:
        self._enter("get_blob")
        encoded = base64.b64encode(self.blobs[sha].encode("utf-8")).decode("ascii")
        # GitHub wraps base64 at 60 columns
        wrapped = "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))
        return {"sha": sha, "content": wrapped + "\n", "encoding": "base64"}

    async def create_file(
        self, path: str, content: str, message: str, committer: Committer, branch: str
    ) -> str:
        self._enter("create_file")
        if path in self.files:
            raise RemoteError(
                code=ErrorCode.REMOTE_FAILED,
                message=f"HTTP 422 for create {path}",
                suggestion="",
            )
        self.last_committer = committer
        return self.commit({path: content}, message, author=committer.name)

    async def update_file(
        self,
        path: str,
        content: str,
        message: str,
        blob_sha: str,
        committer: Committer,
        branch: str,
    ) -> str:
        self._enter("update_file")
        if self.files.get(path) != blob_sha:
            raise RemoteError(
                code=ErrorCode.REMOTE_CONFLICT,
                message=f"HTTP 409 for update {path}",
                suggestion="",
            )
        self.last_committer = committer
        return self.commit({path: content}, message, author=committer.name)

    async def delete_file(
        self, path: str, message: str, blob_sha: str, committer: Committer, branch: str
    ) -> str:
        self._enter("delete_file")
        if self.files.get(path) != blob_sha:
            raise RemoteError(
                code=ErrorCode.REMOTE_CONFLICT,
                message=f"HTTP 409 for delete {path}",
                suggestion="",
            )
        self.last_committer = committer
        return self.commit({path: None}, message, author=committer.name)


@pytest.fixture()
def settings() -> Settings:
    """Fully configured settings with a ``content`` root."""
    return Settings(
        github=GitHubSettings(api_key="ghp_test", repo_user="acme", repo_name="site"),
        content=ContentSettings(content_root="content"),
    )


@pytest.fixture()
def identity() -> StaticIdentity:
    return StaticIdentity(
        {
            "username": "ada",
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
        }
    )


@pytest.fixture()
def repo() -> FakeRepository:
    """Repository with two versions of one post and one untouched page."""
    fake = FakeRepository()
    fake.commit(
        {"content/posts/hello.md": "# Hello\n", "content/about.md": "About us\n"},
        "Initial import",
    )
    fake.commit({"content/posts/hello.md": "# Hello, world\n"}, "Expand greeting")
    return fake


@pytest.fixture()
def revisions(
    repo: FakeRepository, settings: Settings, identity: StaticIdentity
) -> GitHubRevisions:
    return GitHubRevisions(repo, settings, identity=identity)


@pytest.fixture()
async def cache() -> AsyncGenerator[SQLiteCache, None]:
    """Durable cache on an in-memory SQLite database."""
    async with aiosqlite.connect(":memory:") as db:
        sqlite_cache = SQLiteCache(db)
        await sqlite_cache.init_db()
        yield sqlite_cache
