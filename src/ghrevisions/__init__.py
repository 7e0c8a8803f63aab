"""ghrevisions: content revision history stored in a GitHub repository.

Typical host usage::

    async with open_revisions(identity) as revisions:
        history = await revisions.get_revisions("posts/hello.md")
"""

from __future__ import annotations

import warnings
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ghrevisions")
except PackageNotFoundError:
    # Running from a source checkout that was never installed
    warnings.warn(
        "Package metadata for 'ghrevisions' not found; using fallback version '0.0.0+unknown'.",
        RuntimeWarning,
        stacklevel=2,
    )
    __version__ = "0.0.0+unknown"

# Submodules read __version__, so it is bound before they are imported
from ghrevisions.committer import StaticIdentity  # noqa: E402
from ghrevisions.config import Settings  # noqa: E402
from ghrevisions.errors import (  # noqa: E402
    ConfigurationError,
    ErrorCode,
    NotFoundError,
    RemoteError,
    RevisionsError,
)
from ghrevisions.factory import open_revisions  # noqa: E402
from ghrevisions.logs import setup_logging  # noqa: E402
from ghrevisions.models.revision import Revision  # noqa: E402
from ghrevisions.revisions import GitHubRevisions  # noqa: E402

__all__ = [
    "ConfigurationError",
    "ErrorCode",
    "GitHubRevisions",
    "NotFoundError",
    "RemoteError",
    "Revision",
    "RevisionsError",
    "Settings",
    "StaticIdentity",
    "__version__",
    "open_revisions",
    "setup_logging",
]
