"""Mapping of CMS content paths onto repository paths.

Pure functions, no I/O.
"""

from __future__ import annotations

import re

_SLASH_RUN = re.compile(r"/{2,}")


def _trim(path: str) -> str:
    return _SLASH_RUN.sub("/", path).strip("/")


def normalize(content_root: str, path: str) -> str:
    """Return the repository-relative path of a content file.

    Joins ``content_root`` and ``path`` with a single slash and trims the
    outer slashes. Passing an already normalized path back in returns it
    unchanged: a doubled leading content root is collapsed once.

        >>> normalize("content", "posts/hello.md")
        'content/posts/hello.md'
        >>> normalize("content", "content/posts/hello.md")
        'content/posts/hello.md'
    """
    root = _trim(content_root)
    joined = _trim(f"{root}/{path}")
    if not root:
        return joined

    doubled = f"{root}/{root}"
    if joined == doubled or joined.startswith(doubled + "/"):
        joined = joined[len(root) + 1 :]
    return joined
