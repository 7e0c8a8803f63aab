"""Wiring of settings, HTTP client, cache backend and revision service.

``open_revisions`` owns every shared resource for the lifetime of the
``async with`` block and releases them in reverse order on exit.
"""

from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from ghrevisions import __version__
from ghrevisions.cache import MemoryCache, SQLiteCache
from ghrevisions.config import Settings, require_repository
from ghrevisions.github import GitHubClient, build_http_client
from ghrevisions.logs import setup_logging
from ghrevisions.revisions import GitHubRevisions

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx

    from ghrevisions.protocols import (
        CacheBackendProtocol,
        IdentityProviderProtocol,
        RevisionProvider,
    )

log = structlog.get_logger()


async def _open_cache_backend(settings: Settings, stack: AsyncExitStack) -> CacheBackendProtocol:
    if settings.cache.backend == "operation":
        return MemoryCache()

    db_path = Path(settings.cache.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await stack.enter_async_context(aiosqlite.connect(str(db_path)))
    cache = SQLiteCache(db)
    await cache.init_db()
    return cache


@asynccontextmanager
async def open_revisions(
    identity: IdentityProviderProtocol,
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncGenerator[RevisionProvider, None]:
    """Yield a ready GitHubRevisions for the configured repository.

    Configuration is validated before any connection is opened. A caller
    supplied ``http_client`` is used as-is and left open on exit. With
    ``logging.configure`` set, structlog is configured first.
    """
    settings = settings if settings is not None else Settings()
    if settings.logging.configure:
        setup_logging(settings.logging)
    require_repository(settings)

    async with AsyncExitStack() as stack:
        if http_client is None:
            http_client = await stack.enter_async_context(build_http_client(settings.github))

        cache_backend = await _open_cache_backend(settings, stack)
        client = GitHubClient(
            http_client,
            repo_user=settings.github.repo_user or "",
            repo_name=settings.github.repo_name or "",
        )
        service = GitHubRevisions(
            client,
            settings,
            identity=identity,
            cache_backend=cache_backend,
        )

        log.info(
            "revisions_opened",
            version=__version__,
            repository=f"{settings.github.repo_user}/{settings.github.repo_name}",
            branch=settings.github.branch,
            cache_backend=settings.cache.backend,
        )
        try:
            yield service
        finally:
            log.info("revisions_closed")
