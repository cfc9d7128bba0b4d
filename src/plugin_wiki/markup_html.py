from __future__ import annotations

import html

from plugin_wiki.block_scanner import DEFAULT_MAX_DEPTH, render
from plugin_wiki.domain.render_tree import (
    Block,
    Bold,
    Dropdown,
    FencedCode,
    Heading,
    Highlight,
    InlineCode,
    Link,
    ListBlock,
    ListKind,
    Paragraph,
    PlainText,
    RenderTree,
    Span,
    ViewState,
)

_LINK_REL = "noopener noreferrer"


def markup_to_html(
    document: str,
    *,
    view: ViewState | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Render wiki markup straight to deterministic HTML.

    Supported:
    - Headings: `# `, `## `, `### `
    - Dropdowns: `{{<Title>` ... `}}` (nested content is rendered recursively)
    - Code blocks: ``` ``'lang' ``` ... ``` `` ``` with a copy button
    - Inline code: ``` ``code`` ``` with a copy button
    - Lists: `- ` / `* ` and `1. `
    - Inline: `[[highlight]]`, `[label](url)`, `**bold**`
    """
    return render_html(render(document, view=view, max_depth=max_depth))


def render_html(tree: RenderTree) -> str:
    out: list[str] = []
    for block in tree:
        out.append(_render_block(block))
    return "\n".join(out).rstrip() + "\n" if out else ""


def _render_block(block: Block) -> str:
    match block:
        case Heading(level=level, text=text):
            return f"<h{level}>{html.escape(text)}</h{level}>"
        case Paragraph(spans=spans):
            return f"<p>{_render_spans(spans)}</p>"
        case ListBlock(kind=kind, items=items):
            tag = "ol" if kind is ListKind.ordered else "ul"
            lines = [f"<{tag}>"]
            lines.extend(f"<li>{_render_spans(item)}</li>" for item in items)
            lines.append(f"</{tag}>")
            return "\n".join(lines)
        case FencedCode():
            return _render_code_block(block)
        case Dropdown():
            return _render_dropdown(block)
    raise TypeError(f"Unsupported block: {type(block).__name__}")


def _render_code_block(block: FencedCode) -> str:
    language = html.escape(block.language)
    return "\n".join(
        [
            f'<div class="code-block" data-language="{language}">',
            '<div class="code-header">',
            f'<span class="code-language">{language}</span>',
            _copy_button(block.code, block.fragment_id, copied=block.copied),
            "</div>",
            f"<pre><code>{html.escape(block.code)}</code></pre>",
            "</div>",
        ]
    )


def _render_dropdown(block: Dropdown) -> str:
    open_attr = " open" if block.expanded else ""
    dropdown_id = html.escape(block.dropdown_id, quote=True)
    lines = [
        f'<details class="dropdown" data-dropdown-id="{dropdown_id}"{open_attr}>',
        f"<summary>{html.escape(block.title)}</summary>",
        '<div class="dropdown-body">',
    ]
    body = render_html(block.children)
    if body:
        lines.append(body.rstrip("\n"))
    lines.extend(["</div>", "</details>"])
    return "\n".join(lines)


def _render_spans(spans: tuple[Span, ...]) -> str:
    return "".join(_render_span(span) for span in spans)


def _render_span(span: Span) -> str:
    match span:
        case PlainText(text=text):
            return html.escape(text)
        case Bold(text=text):
            return f"<strong>{html.escape(text)}</strong>"
        case Highlight(text=text):
            return f'<span class="highlight">{html.escape(text)}</span>'
        case Link(label=label, target=target):
            href = html.escape(target, quote=True)
            return f'<a href="{href}" target="_blank" rel="{_LINK_REL}">{html.escape(label)}</a>'
        case InlineCode():
            return (
                '<span class="inline-code">'
                f"<code>{html.escape(span.text)}</code>"
                f"{_copy_button(span.text, span.fragment_id, copied=span.copied)}"
                "</span>"
            )
    raise TypeError(f"Unsupported span: {type(span).__name__}")


def _copy_button(text: str, fragment_id: str, *, copied: bool) -> str:
    label = "Copied" if copied else "Copy"
    state = " copied" if copied else ""
    return (
        f'<button type="button" class="copy-btn{state}" '
        f'data-copy-id="{html.escape(fragment_id, quote=True)}" '
        f'data-copy-text="{html.escape(text, quote=True)}">{label}</button>'
    )
