from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ListKind(StrEnum):
    ordered = "ordered"
    unordered = "unordered"


# --- Inline spans ---


@dataclass(frozen=True)
class PlainText:
    text: str

    @property
    def source(self) -> str:
        return self.text


@dataclass(frozen=True)
class Bold:
    text: str

    @property
    def source(self) -> str:
        return f"**{self.text}**"


@dataclass(frozen=True)
class Highlight:
    text: str

    @property
    def source(self) -> str:
        return f"[[{self.text}]]"


@dataclass(frozen=True)
class Link:
    label: str
    target: str

    @property
    def text(self) -> str:
        return self.label

    @property
    def source(self) -> str:
        return f"[{self.label}]({self.target})"


@dataclass(frozen=True)
class InlineCode:
    text: str
    fragment_id: str
    copied: bool = False

    @property
    def source(self) -> str:
        return f"``{self.text}``"


Span = PlainText | Bold | Highlight | Link | InlineCode


# --- Blocks ---


@dataclass(frozen=True)
class Heading:
    level: int
    text: str

    def __post_init__(self) -> None:
        if self.level not in (1, 2, 3):
            raise ValueError("heading level must be 1, 2 or 3")


@dataclass(frozen=True)
class Paragraph:
    spans: tuple[Span, ...]


@dataclass(frozen=True)
class ListBlock:
    kind: ListKind
    items: tuple[tuple[Span, ...], ...]


@dataclass(frozen=True)
class FencedCode:
    language: str
    code: str
    fragment_id: str
    copied: bool = False


@dataclass(frozen=True)
class Dropdown:
    """Collapsible section whose body is a nested render tree."""

    title: str
    children: tuple[Block, ...]
    dropdown_id: str
    expanded: bool = False


Block = Heading | Paragraph | ListBlock | FencedCode | Dropdown
RenderTree = tuple[Block, ...]


@dataclass(frozen=True)
class ViewState:
    """Presentation state that flows into a render pass.

    Only flags on nodes depend on it; block classification never does.
    """

    expanded: frozenset[str] = field(default_factory=frozenset)
    copied_id: str | None = None


def span_text(span: Span) -> str:
    """Visible text of a span, without delimiters."""
    return span.text


def spans_source(spans: tuple[Span, ...]) -> str:
    return "".join(span.source for span in spans)


def spans_visible_text(spans: tuple[Span, ...]) -> str:
    return "".join(span_text(span) for span in spans)


def find_fragment(tree: RenderTree, fragment_id: str) -> str | None:
    """Copyable text of the code fragment with ``fragment_id``, or None."""
    for block in tree:
        match block:
            case FencedCode() if block.fragment_id == fragment_id:
                return block.code
            case Paragraph(spans=spans):
                found = _find_in_spans(spans, fragment_id)
            case ListBlock(items=items):
                found = _find_in_spans(tuple(span for item in items for span in item), fragment_id)
            case Dropdown(children=children):
                found = find_fragment(children, fragment_id)
            case _:
                found = None
        if found is not None:
            return found
    return None


def _find_in_spans(spans: tuple[Span, ...], fragment_id: str) -> str | None:
    for span in spans:
        if isinstance(span, InlineCode) and span.fragment_id == fragment_id:
            return span.text
    return None


def tree_to_json(tree: RenderTree) -> list[dict[str, Any]]:
    return [_block_to_json(block) for block in tree]


def _block_to_json(block: Block) -> dict[str, Any]:
    match block:
        case Heading(level=level, text=text):
            return {"type": "heading", "level": level, "text": text}
        case Paragraph(spans=spans):
            return {"type": "paragraph", "spans": [_span_to_json(span) for span in spans]}
        case ListBlock(kind=kind, items=items):
            return {
                "type": "list",
                "kind": kind.value,
                "items": [[_span_to_json(span) for span in item] for item in items],
            }
        case FencedCode():
            return {
                "type": "code",
                "language": block.language,
                "code": block.code,
                "fragment_id": block.fragment_id,
                "copied": block.copied,
            }
        case Dropdown():
            return {
                "type": "dropdown",
                "title": block.title,
                "dropdown_id": block.dropdown_id,
                "expanded": block.expanded,
                "children": tree_to_json(block.children),
            }
    raise TypeError(f"Unsupported block: {type(block).__name__}")


def _span_to_json(span: Span) -> dict[str, Any]:
    match span:
        case PlainText(text=text):
            return {"type": "text", "text": text}
        case Bold(text=text):
            return {"type": "bold", "text": text}
        case Highlight(text=text):
            return {"type": "highlight", "text": text}
        case Link(label=label, target=target):
            return {"type": "link", "label": label, "target": target}
        case InlineCode():
            return {
                "type": "inline_code",
                "text": span.text,
                "fragment_id": span.fragment_id,
                "copied": span.copied,
            }
    raise TypeError(f"Unsupported span: {type(span).__name__}")
