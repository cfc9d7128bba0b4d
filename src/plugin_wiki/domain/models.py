from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.types import AwareDatetime

RecordId = Annotated[str, Field(min_length=1, pattern=r"^[a-z0-9][a-z0-9_-]*$")]
HexColor = Annotated[str, Field(pattern=r"^#[0-9a-fA-F]{6}$")]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DomainModel(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class AnnouncementIcon(StrEnum):
    info = "info"
    alert = "alert"
    success = "success"
    warning = "warning"


class WikiPage(DomainModel):
    id: RecordId
    title: Annotated[str, Field(min_length=1)]
    content: str = ""
    order: Annotated[int, Field(ge=0)] = 0
    category: str = ""
    created_at: AwareDatetime = Field(default_factory=_utc_now)
    updated_at: AwareDatetime = Field(default_factory=_utc_now)


class Category(DomainModel):
    id: RecordId
    name: Annotated[str, Field(min_length=1)]
    order: Annotated[int, Field(ge=0)] = 0
    created_at: AwareDatetime = Field(default_factory=_utc_now)


class Announcement(DomainModel):
    id: RecordId
    text: str
    icon: AnnouncementIcon = AnnouncementIcon.info
    background_color: HexColor = "#3b82f6"
    enabled: bool = True
    created_at: AwareDatetime = Field(default_factory=_utc_now)
    updated_at: AwareDatetime = Field(default_factory=_utc_now)


_PAGE_UPDATABLE = frozenset({"title", "content", "order", "category"})
_CATEGORY_UPDATABLE = frozenset({"name", "order"})


def page_updates(updates: dict[str, Any]) -> dict[str, Any]:
    """Reject fields an editor may not change on a page."""
    unknown = set(updates) - _PAGE_UPDATABLE
    if unknown:
        raise ValueError(f"Unknown page fields: {', '.join(sorted(unknown))}")
    return dict(updates)


def category_updates(updates: dict[str, Any]) -> dict[str, Any]:
    unknown = set(updates) - _CATEGORY_UPDATABLE
    if unknown:
        raise ValueError(f"Unknown category fields: {', '.join(sorted(unknown))}")
    return dict(updates)
