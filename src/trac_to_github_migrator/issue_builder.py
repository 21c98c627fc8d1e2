"""Build GitHub issue and comment bodies from Trac text."""

from __future__ import annotations

import datetime as dt
from typing import Final

from .markup import trac_to_markdown

GITHUB_PROFILE_URL: Final[str] = "https://github.com"


def format_timestamp(microseconds: int | None) -> str:
    """Format a Trac timestamp to human-readable format.

    Args:
        microseconds: Microseconds since the epoch, as stored by Trac

    Returns:
        Formatted UTC timestamp (e.g., "2024-01-15 10:30:45Z").
        Returns an empty string for a missing or zero timestamp.
    """
    if not microseconds:
        return ""

    timestamp_dt = dt.datetime.fromtimestamp(microseconds / 1_000_000, tz=dt.UTC)
    formatted = timestamp_dt.isoformat(sep=" ", timespec="seconds")
    return formatted.replace("+00:00", "Z")


def format_author(author: str, github_login: str | None) -> str:
    """Render a legacy author, linking the GitHub profile when one is known."""
    if github_login:
        return f"[@{github_login}]({GITHUB_PROFILE_URL}/{github_login})"
    return author or "anonymous"


def build_body(
    text: str | None,
    *,
    author: str,
    github_login: str | None = None,
    acts_as_author: bool = False,
    timestamp: int | None = None,
) -> str:
    """Translate Trac text and prepend the attribution header.

    The header is added after translation so it is never rewritten by the
    markup rules.

    Args:
        text: Trac wiki text
        author: Legacy author name
        github_login: GitHub login the author maps to, if any
        acts_as_author: True when the mutation is performed with the author's own credential
        timestamp: Original time of the text in microseconds, if known

    Returns:
        Complete body for GitHub
    """
    header: list[str] = []
    if not acts_as_author:
        header.append(f"**Original reporter:** {format_author(author, github_login)}")
    formatted = format_timestamp(timestamp)
    if formatted:
        header.insert(0, f"**Date:** {formatted}")

    body = trac_to_markdown(text)
    if not header:
        return body
    return "\n".join(header) + "\n\n" + body
