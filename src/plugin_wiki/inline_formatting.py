from __future__ import annotations

import re
from collections.abc import Callable

from plugin_wiki.domain.render_tree import Bold, Highlight, Link, PlainText, Span
from plugin_wiki.markup_patterns import LINE_CHAR

_HIGHLIGHT_RE = re.compile(r"\[\[(" + LINE_CHAR + r"+?)\]\]")
_LINK_RE = re.compile(r"\[(" + LINE_CHAR + r"+?)\]\((" + LINE_CHAR + r"+?)\)")
_BOLD_RE = re.compile(r"\*\*(" + LINE_CHAR + r"+?)\*\*")


def format_inline(text: str) -> tuple[Span, ...]:
    """Split one line of text into typed inline spans.

    Passes run in a fixed order: highlight, then link, then bold. Each pass
    only sees the text the previous pass left unmatched, so markup inside a
    highlight or a link label is kept literally.
    """
    return tuple(_split_highlights(text))


def _split_highlights(text: str) -> list[Span]:
    return _split_with(
        text,
        _HIGHLIGHT_RE,
        lambda match: Highlight(text=match.group(1)),
        remainder=_split_links,
    )


def _split_links(text: str) -> list[Span]:
    return _split_with(
        text,
        _LINK_RE,
        lambda match: Link(label=match.group(1), target=match.group(2)),
        remainder=_split_bold,
    )


def _split_bold(text: str) -> list[Span]:
    return _split_with(
        text,
        _BOLD_RE,
        lambda match: Bold(text=match.group(1)),
        remainder=_plain,
    )


def _plain(text: str) -> list[Span]:
    if not text:
        return []
    return [PlainText(text=text)]


def _split_with(
    text: str,
    pattern: re.Pattern[str],
    build: Callable[[re.Match[str]], Span],
    *,
    remainder: Callable[[str], list[Span]],
) -> list[Span]:
    spans: list[Span] = []
    last_end = 0
    for match in pattern.finditer(text):
        if match.start() > last_end:
            spans.extend(remainder(text[last_end : match.start()]))
        spans.append(build(match))
        last_end = match.end()

    if last_end < len(text):
        spans.extend(remainder(text[last_end:]))
    return spans
