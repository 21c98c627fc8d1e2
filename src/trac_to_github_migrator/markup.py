"""
Translation of Trac wiki markup to GitHub Flavored Markdown.

The translation is an ordered list of regex rewrites. Order matters: code
spans are converted and set aside before anything could rewrite their
contents, and headings are matched from the longest marker down.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Final


def _fenced_block(match: re.Match[str]) -> str:
    lang = match[1] or ""
    return f"```{lang}\n{match[2]}\n```"


def _list_item(marker: str) -> Callable[[re.Match[str]], str]:
    def rewrite(match: re.Match[str]) -> str:
        # Trac needs one leading space for a top level item, markdown nests per two spaces
        depth = len(match[1].expandtabs(4)) - 1
        return " " * (2 * depth) + marker.format(*match.groups()[1:])

    return rewrite


def _heading_rules() -> list[tuple[re.Pattern[str], str]]:
    return [
        (
            re.compile(rf"^{'=' * level}[ \t]+(.+?)[ \t]+{'=' * level}[ \t]*(?:#\S+)?[ \t]*$", re.MULTILINE),
            f"{'#' * level} \\1",
        )
        for level in (4, 3, 2, 1)
    ]


_Rewrite = str | Callable[[re.Match[str]], str]

_LINE_ENDINGS: Final[re.Pattern[str]] = re.compile(r"\r\n?")

# Inline code, then multi-line blocks with an optional #!processor line.
# Their output is set aside until the other rules have run.
CODE_RULES: Final[list[tuple[re.Pattern[str], _Rewrite]]] = [
    (re.compile(r"\{\{\{([^\n]*?)\}\}\}"), r"`\1`"),
    (re.compile(r"\{\{\{[ \t]*\n(?:#!(\w+)[ \t]*\n)?(.*?)\n?[ \t]*\}\}\}", re.DOTALL), _fenced_block),
]

RULES: Final[list[tuple[re.Pattern[str], _Rewrite]]] = [
    *_heading_rules(),
    # [url label]
    (re.compile(r"\[((?:https?|ftp|mailto):[^\s\]]+)[ \t]+([^\]\n]+)\]"), r"[\2](\1)"),
    # !CamelCase escapes
    (re.compile(r"!([A-Z][a-z0-9]+(?:[A-Z][a-z0-9]+)+)\b"), r"\1"),
    # Bold before italic
    (re.compile(r"'''(.+?)'''"), r"**\1**"),
    (re.compile(r"''(.+?)''"), r"*\1*"),
    (re.compile(r"^( [ \t]*)[*-][ \t]+", re.MULTILINE), _list_item("* ")),
    (re.compile(r"^( [ \t]*)(\d+)\.[ \t]+", re.MULTILINE), _list_item("{0}. ")),
    (re.compile(r"\[\[BR\]\]", re.IGNORECASE), "<br>"),
]


def _placeholder(index: int) -> str:
    return f"\x00{index}\x00"


def _stashing(rewrite: _Rewrite, stash: list[str]) -> Callable[[re.Match[str]], str]:
    def replace(match: re.Match[str]) -> str:
        stash.append(match.expand(rewrite) if isinstance(rewrite, str) else rewrite(match))
        return _placeholder(len(stash) - 1)

    return replace


def trac_to_markdown(text: str | None) -> str:
    """Translate Trac wiki text to GitHub Markdown.

    Code spans and blocks are translated first and kept verbatim: no other
    rule rewrites their contents.

    Args:
        text: Trac wiki formatted text (may be empty or None)

    Returns:
        The translated text. Empty input gives an empty string.
    """
    if not text:
        return ""

    text = _LINE_ENDINGS.sub("\n", text)

    code: list[str] = []
    for pattern, rewrite in CODE_RULES:
        text = pattern.sub(_stashing(rewrite, code), text)

    for pattern, rewrite in RULES:
        text = pattern.sub(rewrite, text)

    # Last stashed first, so a block restores before the spans inside it
    for index in reversed(range(len(code))):
        text = text.replace(_placeholder(index), code[index])
    return text
