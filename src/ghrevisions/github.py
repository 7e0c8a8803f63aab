"""GitHub REST API client for commit history, trees, blobs and file commits.

All network I/O goes through a single GitHubClient instance. The client
receives an httpx.AsyncClient via constructor injection; whoever builds the
revision service owns the httpx client lifecycle.

Payloads are returned as raw JSON so the caching layer can store them as-is.
"""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
import structlog

from ghrevisions import __version__
from ghrevisions.errors import ErrorCode, NotFoundError, RemoteError

if TYPE_CHECKING:
    from ghrevisions.config import GitHubSettings
    from ghrevisions.models.github import Committer

log = structlog.get_logger()

GITHUB_API_VERSION = "2022-11-28"


def build_http_client(settings: GitHubSettings) -> httpx.AsyncClient:
    """Create the shared httpx client for the configured GitHub API."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": f"ghrevisions/{__version__}",
    }
    if settings.api_key is not None:
        headers["Authorization"] = f"Bearer {settings.api_key.get_secret_value()}"

    return httpx.AsyncClient(
        base_url=settings.api_url,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers=headers,
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def encode_content(content: str) -> str:
    """Base64-encode UTF-8 text for the contents API."""
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


def decode_blob_content(blob: dict[str, Any]) -> str:
    """Return the text of a ``GET /git/blobs/{sha}`` payload.

    GitHub wraps base64 content at 60 columns; the line breaks are discarded.
    """
    content = blob.get("content", "")
    if blob.get("encoding", "base64") != "base64":
        return content
    try:
        return base64.b64decode(content).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise RemoteError(
            code=ErrorCode.REMOTE_FAILED,
            message=f"Blob {blob.get('sha')} is not base64-encoded UTF-8 text",
            suggestion="Only text content files can be read as revisions.",
            recoverable=False,
        ) from exc


def _is_empty_repository(response: httpx.Response) -> bool:
    """GitHub answers commit listings on a repository with no commits with 409."""
    if response.status_code != 409:
        return False
    try:
        payload = response.json()
    except ValueError:
        return False
    message = payload.get("message") if isinstance(payload, dict) else None
    return isinstance(message, str) and "repository is empty" in message.lower()


def _raise_for_status(
    response: httpx.Response,
    what: str,
    *,
    not_found_code: ErrorCode | None = None,
) -> None:
    """Translate a non-2xx GitHub response into a RevisionsError."""
    if response.is_success:
        return

    status = response.status_code
    log.warning("github_request_failed", what=what, status_code=status)

    if not_found_code is not None and status in (404, 422):
        raise NotFoundError(
            code=not_found_code,
            message=f"Not found: {what}",
            suggestion="Check that the revision belongs to this repository.",
            recoverable=False,
        )
    if status == 401:
        raise RemoteError(
            code=ErrorCode.REMOTE_AUTH_FAILED,
            message=f"HTTP 401 for {what}",
            suggestion="The GitHub API key is invalid or has expired.",
            recoverable=False,
        )
    if status == 429 or (status == 403 and response.headers.get("x-ratelimit-remaining") == "0"):
        raise RemoteError(
            code=ErrorCode.REMOTE_RATE_LIMITED,
            message=f"GitHub rate limit reached for {what}",
            suggestion="Wait for the rate limit window to reset and try again.",
            recoverable=True,
        )
    if status == 409:
        raise RemoteError(
            code=ErrorCode.REMOTE_CONFLICT,
            message=f"HTTP 409 for {what}",
            suggestion="The file changed remotely since it was read. Reload and save again.",
            recoverable=False,
        )
    raise RemoteError(
        code=ErrorCode.REMOTE_FAILED,
        message=f"HTTP {status} for {what}",
        suggestion="GitHub may be temporarily unavailable.",
        recoverable=status >= 500,
    )


class GitHubClient:
    """Thin async wrapper over the GitHub endpoints used for revisions."""

    def __init__(self, client: httpx.AsyncClient, repo_user: str, repo_name: str) -> None:
        self._client = client
        self._repo = f"/repos/{quote(repo_user, safe='')}/{quote(repo_name, safe='')}"

    async def _send(self, method: str, url: str, what: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("github_request_failed", what=what, error=str(exc))
            raise RemoteError(
                code=ErrorCode.REMOTE_FAILED,
                message=f"Network error for {what}: {exc}",
                suggestion="GitHub may be temporarily unavailable.",
                recoverable=True,
            ) from exc

    async def _request(
        self,
        method: str,
        url: str,
        what: str,
        *,
        not_found_code: ErrorCode | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        response = await self._send(method, url, what, **kwargs)
        _raise_for_status(response, what, not_found_code=not_found_code)
        return response

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_commits(
        self,
        *,
        path: str | None = None,
        sha: str | None = None,
        per_page: int = 100,
        max_pages: int | None = None,
    ) -> list[dict[str, Any]]:
        """List commits newest first, following ``Link: rel="next"`` pages.

        A repository without any commit has an empty history, not an error.
        """
        params: dict[str, Any] = {"per_page": per_page}
        if path is not None:
            params["path"] = path
        if sha is not None:
            params["sha"] = sha

        what = f"commits of {path or sha}"
        commits: list[dict[str, Any]] = []
        url: str | None = f"{self._repo}/commits"
        pages = 0
        while url is not None:
            response = await self._send("GET", url, what, params=params)
            if _is_empty_repository(response):
                log.info("github_repository_empty", repo=self._repo)
                break
            _raise_for_status(response, what)
            commits.extend(response.json())
            pages += 1
            if max_pages is not None and pages >= max_pages:
                break
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string
            params = {}

        log.debug("github_commits_listed", path=path, count=len(commits), pages=pages)
        return commits

    async def get_commit(self, sha: str) -> dict[str, Any]:
        response = await self._request(
            "GET",
            f"{self._repo}/commits/{quote(sha, safe='')}",
            f"commit {sha}",
            not_found_code=ErrorCode.REVISION_NOT_FOUND,
        )
        return response.json()

    async def get_tree(self, sha: str, recursive: bool = True) -> dict[str, Any]:
        params = {"recursive": "1"} if recursive else {}
        response = await self._request(
            "GET",
            f"{self._repo}/git/trees/{quote(sha, safe='')}",
            f"tree {sha}",
            not_found_code=ErrorCode.REVISION_NOT_FOUND,
            params=params,
        )
        tree = response.json()
        if tree.get("truncated"):
            log.warning("github_tree_truncated", sha=sha, entries=len(tree.get("tree", [])))
        return tree

    async def get_blob(self, sha: str) -> dict[str, Any]:
        response = await self._request(
            "GET",
            f"{self._repo}/git/blobs/{quote(sha, safe='')}",
            f"blob {sha}",
            not_found_code=ErrorCode.PATH_NOT_FOUND,
        )
        return response.json()

    # ------------------------------------------------------------------
    # Writes (each one is a commit)
    # ------------------------------------------------------------------

    def _contents_url(self, path: str) -> str:
        return f"{self._repo}/contents/{quote(path, safe='/')}"

    async def _put_contents(self, path: str, body: dict[str, Any], what: str) -> str:
        response = await self._request("PUT", self._contents_url(path), what, json=body)
        commit_sha = response.json()["commit"]["sha"]
        log.info("github_file_committed", path=path, commit=commit_sha)
        return commit_sha

    async def create_file(
        self, path: str, content: str, message: str, committer: Committer, branch: str
    ) -> str:
        body = {
            "message": message,
            "content": encode_content(content),
            "branch": branch,
            "committer": committer.model_dump(),
        }
        return await self._put_contents(path, body, f"create {path}")

    async def update_file(
        self,
        path: str,
        content: str,
        message: str,
        blob_sha: str,
        committer: Committer,
        branch: str,
    ) -> str:
        body = {
            "message": message,
            "content": encode_content(content),
            "sha": blob_sha,
            "branch": branch,
            "committer": committer.model_dump(),
        }
        return await self._put_contents(path, body, f"update {path}")

    async def delete_file(
        self, path: str, message: str, blob_sha: str, committer: Committer, branch: str
    ) -> str:
        body = {
            "message": message,
            "sha": blob_sha,
            "branch": branch,
            "committer": committer.model_dump(),
        }
        response = await self._request(
            "DELETE", self._contents_url(path), f"delete {path}", json=body
        )
        commit_sha = response.json()["commit"]["sha"]
        log.info("github_file_deleted", path=path, commit=commit_sha)
        return commit_sha
