"""Committer identity for commits made on behalf of the host's current user."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime

from ghrevisions.models.github import Committer


class StaticIdentity:
    """Identity provider that always reports the same user fields."""

    def __init__(self, fields: Mapping[str, str]) -> None:
        self._fields = dict(fields)

    def current_user(self) -> Mapping[str, str]:
        return self._fields


def build_committer(
    member: Mapping[str, str],
    name_fields: str,
    email_field: str,
    now: datetime | None = None,
) -> Committer:
    """Build the committer from the member fields named in configuration.

    ``name_fields`` is a space-separated list of member fields, e.g.
    ``"first_name last_name"``. A blank result falls back to ``username``.
    """
    name = " ".join(member.get(field, "") or "" for field in name_fields.split())
    if not name.strip():
        name = member.get("username", "") or ""

    date = (now or datetime.now(UTC)).isoformat(timespec="seconds")
    return Committer(
        name=name.strip(),
        email=member.get(email_field, "") or "",
        date=date,
    )
