from __future__ import annotations

import json
import os
import re
import tempfile
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from plugin_wiki.domain.models import (
    Announcement,
    Category,
    WikiPage,
    category_updates,
    page_updates,
)


class WikiStoreError(RuntimeError):
    pass


_PATH_SEGMENT_RE = re.compile(r"[^a-zA-Z0-9._-]+")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _safe_path_segment(value: str) -> str:
    if "/" in value or "\\" in value:
        raise ValueError("path segment must not contain path separators")
    cleaned = _PATH_SEGMENT_RE.sub("_", value).strip("._-")
    if not cleaned:
        raise ValueError("path segment must not be empty after sanitization")
    return cleaned


def _fsync_dir(path: Path) -> None:
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="wb",
        delete=False,
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp.write(text.encode("utf-8"))
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_path = Path(tmp.name)

    try:
        os.replace(tmp_path, path)
        _fsync_dir(path.parent)
    finally:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class WikiStoreLayout:
    root: Path

    @property
    def pages_dir(self) -> Path:
        return self.root / "pages"

    @property
    def categories_dir(self) -> Path:
        return self.root / "categories"

    @property
    def announcements_dir(self) -> Path:
        return self.root / "announcements"

    def page_json_path(self, page_id: str) -> Path:
        return self.pages_dir / f"{_safe_path_segment(page_id)}.json"

    def category_json_path(self, category_id: str) -> Path:
        return self.categories_dir / f"{_safe_path_segment(category_id)}.json"

    def announcement_json_path(self, announcement_id: str) -> Path:
        return self.announcements_dir / f"{_safe_path_segment(announcement_id)}.json"


class WikiStore:
    """Document store for pages, categories and the announcement banner.

    One JSON file per record. Writes are atomic per file; there are no
    cross-record transactions.
    """

    def __init__(self, root: Path) -> None:
        self.layout = WikiStoreLayout(root=root)

    # --- pages ---

    def list_pages(self) -> list[WikiPage]:
        pages = self._load_all(self.layout.pages_dir, WikiPage)
        pages.sort(key=lambda page: (page.order, page.id))
        return pages

    def get_page(self, page_id: str) -> WikiPage | None:
        return self._load_optional(self.layout.page_json_path(page_id), WikiPage)

    def create_page(self, page: WikiPage) -> WikiPage:
        path = self.layout.page_json_path(page.id)
        if path.exists():
            raise WikiStoreError(f"Page already exists: {page.id}")
        self._write_model(path, page)
        return page

    def update_page(self, page_id: str, updates: Mapping[str, Any]) -> WikiPage:
        existing = self.get_page(page_id)
        if existing is None:
            raise WikiStoreError(f"Unknown page: {page_id}")
        changes = page_updates(dict(updates))
        changes["updated_at"] = _utc_now()
        updated = _validated_copy(existing, changes, source=self.layout.page_json_path(page_id))
        self._write_model(self.layout.page_json_path(page_id), updated)
        return updated

    def delete_page(self, page_id: str) -> None:
        path = self.layout.page_json_path(page_id)
        if not path.exists():
            raise WikiStoreError(f"Unknown page: {page_id}")
        path.unlink()

    def reorder_pages(self, page_ids: Iterable[str]) -> list[WikiPage]:
        """Assign ``order`` by position; pages not listed keep their relative order after them."""
        requested = list(page_ids)
        by_id = {page.id: page for page in self.list_pages()}
        missing = [page_id for page_id in requested if page_id not in by_id]
        if missing:
            raise WikiStoreError(f"Unknown pages: {', '.join(missing)}")

        listed = dict.fromkeys(requested)
        ordered = [by_id[page_id] for page_id in listed]
        ordered.extend(page for page in by_id.values() if page.id not in listed)
        result: list[WikiPage] = []
        for position, page in enumerate(ordered):
            if page.order != position:
                page = self.update_page(page.id, {"order": position})
            result.append(page)
        return result

    # --- categories ---

    def list_categories(self) -> list[Category]:
        categories = self._load_all(self.layout.categories_dir, Category)
        categories.sort(key=lambda category: (category.order, category.id))
        return categories

    def get_category(self, category_id: str) -> Category | None:
        return self._load_optional(self.layout.category_json_path(category_id), Category)

    def create_category(self, category: Category) -> Category:
        path = self.layout.category_json_path(category.id)
        if path.exists():
            raise WikiStoreError(f"Category already exists: {category.id}")
        self._write_model(path, category)
        return category

    def update_category(self, category_id: str, updates: Mapping[str, Any]) -> Category:
        existing = self.get_category(category_id)
        if existing is None:
            raise WikiStoreError(f"Unknown category: {category_id}")
        path = self.layout.category_json_path(category_id)
        updated = _validated_copy(existing, category_updates(dict(updates)), source=path)
        self._write_model(path, updated)
        return updated

    def delete_category(self, category_id: str) -> None:
        path = self.layout.category_json_path(category_id)
        if not path.exists():
            raise WikiStoreError(f"Unknown category: {category_id}")
        path.unlink()

    # --- announcement ---

    def get_announcement(self) -> Announcement | None:
        for announcement in self._load_all(self.layout.announcements_dir, Announcement):
            if announcement.enabled:
                return announcement
        return None

    def set_announcement(self, announcement: Announcement) -> Announcement:
        path = self.layout.announcement_json_path(announcement.id)
        existing = self._load_optional(path, Announcement)
        created_at = existing.created_at if existing is not None else announcement.created_at
        stored = announcement.model_copy(update={"created_at": created_at, "updated_at": _utc_now()})
        self._write_model(path, stored)
        return stored

    # --- seeding ---

    def seed_initial_data(self) -> dict[str, int]:
        """Fill every empty collection with the default records."""
        from plugin_wiki.seed_pages import default_announcement, default_categories, default_pages

        seeded = {"pages": 0, "categories": 0, "announcements": 0}
        if not self.list_pages():
            for page in default_pages():
                self.create_page(page)
                seeded["pages"] += 1
        if not self.list_categories():
            for category in default_categories():
                self.create_category(category)
                seeded["categories"] += 1
        if not self._load_all(self.layout.announcements_dir, Announcement):
            self.set_announcement(default_announcement())
            seeded["announcements"] += 1
        return seeded

    # --- helpers ---

    def _write_model(self, path: Path, model: BaseModel) -> None:
        dumped = json.dumps(model.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"
        _atomic_write_text(path, dumped)

    def _load_optional(self, path: Path, model: type[ModelT]) -> ModelT | None:
        if not path.exists():
            return None
        return _read_model(path, model)

    def _load_all(self, directory: Path, model: type[ModelT]) -> list[ModelT]:
        if not directory.exists():
            return []
        return [_read_model(path, model) for path in sorted(directory.glob("*.json"))]


def _read_model(path: Path, model: type[ModelT]) -> ModelT:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise WikiStoreError(f"Invalid JSON at {path}: {exc}") from exc
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise WikiStoreError(f"Invalid {model.__name__} schema at {path}: {exc}") from exc


def _validated_copy(existing: ModelT, changes: Mapping[str, Any], *, source: Path) -> ModelT:
    merged = {**existing.model_dump(), **changes}
    try:
        return type(existing).model_validate(merged)
    except ValidationError as exc:
        raise WikiStoreError(f"Invalid update for {source}: {exc}") from exc
