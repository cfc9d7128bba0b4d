"""Core domain models for plugin-wiki."""

from plugin_wiki.domain.models import (
    Announcement,
    AnnouncementIcon,
    Category,
    RecordId,
    WikiPage,
)
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

__all__ = [
    "Announcement",
    "AnnouncementIcon",
    "Block",
    "Bold",
    "Category",
    "Dropdown",
    "FencedCode",
    "Heading",
    "Highlight",
    "InlineCode",
    "Link",
    "ListBlock",
    "ListKind",
    "Paragraph",
    "PlainText",
    "RecordId",
    "RenderTree",
    "Span",
    "ViewState",
    "WikiPage",
]
