from __future__ import annotations

import re
from collections.abc import Sequence

from plugin_wiki.domain.render_tree import (
    Block,
    Dropdown,
    FencedCode,
    Heading,
    InlineCode,
    ListBlock,
    ListKind,
    Paragraph,
    PlainText,
    RenderTree,
    Span,
    ViewState,
    spans_visible_text,
)
from plugin_wiki.inline_formatting import format_inline
from plugin_wiki.markup_patterns import DIGIT, LINE_CHAR, WHITESPACE, strip_whitespace

DEFAULT_MAX_DEPTH = 64

_HEADING_PREFIXES = (("# ", 1), ("## ", 2), ("### ", 3))
_DROPDOWN_OPEN_RE = re.compile(r"\{\{<(" + LINE_CHAR + r"+?)>")
_DROPDOWN_CLOSE = "}}"
_FENCE = "``"
_FENCE_OPEN_RE = re.compile(r"``'(" + LINE_CHAR + r"+?)'")
_UL_ITEM_RE = re.compile(r"[-*]" + WHITESPACE)
_OL_ITEM_RE = re.compile(DIGIT + r"+\." + WHITESPACE)


def render(
    document: str,
    *,
    view: ViewState | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> RenderTree:
    """Render a wiki document into a tree of blocks.

    Every string is valid input. Unterminated code fences and dropdowns
    absorb the rest of the document instead of failing.
    """
    return scan_blocks(document.split("\n"), view=view, max_depth=max_depth)


def scan_blocks(
    lines: Sequence[str],
    *,
    view: ViewState | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    id_prefix: str = "",
    depth: int = 0,
) -> RenderTree:
    scanner = _BlockScanner(
        lines=lines,
        view=view or ViewState(),
        max_depth=max_depth,
        id_prefix=id_prefix,
        depth=depth,
    )
    return scanner.scan()


def block_text(block: Block) -> str:
    """Literal content of a block with structural and inline markup removed."""
    match block:
        case Heading(text=text):
            return text
        case Paragraph(spans=spans):
            return spans_visible_text(spans)
        case ListBlock(items=items):
            return "\n".join(spans_visible_text(item) for item in items)
        case FencedCode(code=code):
            return code
        case Dropdown(title=title, children=children):
            return "\n".join([title, *(block_text(child) for child in children)])
    raise TypeError(f"Unsupported block: {type(block).__name__}")


class _BlockScanner:
    def __init__(
        self,
        *,
        lines: Sequence[str],
        view: ViewState,
        max_depth: int,
        id_prefix: str,
        depth: int,
    ) -> None:
        self.lines = lines
        self.view = view
        self.max_depth = max_depth
        self.id_prefix = id_prefix
        self.depth = depth
        self.index = 0
        self.blocks: list[Block] = []

    def scan(self) -> RenderTree:
        # Every branch below advances self.index by at least one line.
        while self.index < len(self.lines):
            self._scan_next()
        return tuple(self.blocks)

    def _scan_next(self) -> None:
        line = self.lines[self.index]

        for prefix, level in _HEADING_PREFIXES:
            if line.startswith(prefix):
                self.blocks.append(Heading(level=level, text=line[len(prefix) :]))
                self.index += 1
                return

        if (match := _DROPDOWN_OPEN_RE.fullmatch(line)) is not None:
            self._scan_dropdown(match.group(1))
            return

        if (match := _FENCE_OPEN_RE.match(line)) is not None:
            self._scan_fenced_code(match)
            return

        if _FENCE in line:
            self._scan_inline_code_line(line)
            return

        if _UL_ITEM_RE.match(line) is not None:
            self._scan_list(_UL_ITEM_RE, ListKind.unordered)
            return

        if _OL_ITEM_RE.match(line) is not None:
            self._scan_list(_OL_ITEM_RE, ListKind.ordered)
            return

        if strip_whitespace(line):
            self.blocks.append(Paragraph(spans=format_inline(line)))
        self.index += 1

    def _scan_dropdown(self, title: str) -> None:
        dropdown_id = f"{self.id_prefix}dropdown-{self.index}"
        self.index += 1
        inner: list[str] = []
        while self.index < len(self.lines) and not self.lines[self.index].startswith(_DROPDOWN_CLOSE):
            inner.append(self.lines[self.index])
            self.index += 1
        # Skip the closing marker; past the end when unterminated.
        self.index += 1

        nested = strip_whitespace("\n".join(inner))
        if self.depth + 1 > self.max_depth:
            children: RenderTree = (Paragraph(spans=(PlainText(text=nested),)),) if nested else ()
        else:
            children = scan_blocks(
                nested.split("\n"),
                view=self.view,
                max_depth=self.max_depth,
                id_prefix=f"{dropdown_id}/",
                depth=self.depth + 1,
            )
        self.blocks.append(
            Dropdown(
                title=title,
                children=children,
                dropdown_id=dropdown_id,
                expanded=dropdown_id in self.view.expanded,
            )
        )

    def _scan_fenced_code(self, match: re.Match[str]) -> None:
        language = match.group(1)
        rest = self.lines[self.index][match.end() :]

        if rest.endswith(_FENCE):
            code = rest[: -len(_FENCE)]
        else:
            captured = [rest]
            self.index += 1
            while self.index < len(self.lines) and not self.lines[self.index].endswith(_FENCE):
                captured.append(self.lines[self.index])
                self.index += 1
            if self.index < len(self.lines):
                captured.append(self.lines[self.index][: -len(_FENCE)])
            code = strip_whitespace("\n".join(captured))

        fragment_id = f"{self.id_prefix}code-{self.index}"
        self.blocks.append(
            FencedCode(
                language=language,
                code=code,
                fragment_id=fragment_id,
                copied=self.view.copied_id == fragment_id,
            )
        )
        self.index += 1

    def _scan_inline_code_line(self, line: str) -> None:
        spans: list[Span] = []
        for segment_idx, segment in enumerate(line.split(_FENCE)):
            if segment_idx % 2 == 1:
                fragment_id = f"{self.id_prefix}inline-{self.index}-{segment_idx}"
                spans.append(
                    InlineCode(
                        text=segment,
                        fragment_id=fragment_id,
                        copied=self.view.copied_id == fragment_id,
                    )
                )
            else:
                spans.extend(format_inline(segment))
        self.blocks.append(Paragraph(spans=tuple(spans)))
        self.index += 1

    def _scan_list(self, marker: re.Pattern[str], kind: ListKind) -> None:
        items: list[tuple[Span, ...]] = []
        while self.index < len(self.lines):
            line = self.lines[self.index]
            match = marker.match(line)
            if match is None:
                break
            text = line[2:] if kind is ListKind.unordered else line[match.end() :]
            items.append(format_inline(text))
            self.index += 1
        self.blocks.append(ListBlock(kind=kind, items=tuple(items)))
