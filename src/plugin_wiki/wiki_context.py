from __future__ import annotations

import hmac
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from plugin_wiki.block_scanner import render
from plugin_wiki.copy_state import CopyState, TimerFactory
from plugin_wiki.domain.models import Announcement, Category, WikiPage
from plugin_wiki.domain.render_tree import ViewState, find_fragment, tree_to_json
from plugin_wiki.markup_html import render_html
from plugin_wiki.site_config import SiteConfig
from plugin_wiki.wiki_store import WikiStore, WikiStoreError


class WikiContext:
    """Shared mutable state for the wiki web server.

    Callers hold ``lock`` around every method that touches the store.
    """

    def __init__(
        self,
        *,
        config: SiteConfig,
        data_dir: Path | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.config = config
        self.data_dir = data_dir if data_dir is not None else config.data_dir
        self.store = WikiStore(self.data_dir)
        self.layout = self.store.layout
        self.lock = threading.Lock()
        self._timer_factory = timer_factory
        self._copy_states: dict[str, CopyState] = {}

    def check_password(self, candidate: str | None) -> bool:
        if candidate is None:
            return False
        return hmac.compare_digest(candidate.encode("utf-8"), self.config.admin_password.encode("utf-8"))

    # --- rendering ---

    def render_preview(self, content: str, *, view: ViewState | None = None) -> dict[str, Any]:
        tree = render(content, view=view, max_depth=self.config.max_dropdown_depth)
        return {"html": render_html(tree), "tree": tree_to_json(tree)}

    # --- reads ---

    def get_site_json(self) -> dict[str, Any]:
        pages = self.store.list_pages()
        categories = self.store.list_categories()
        announcement = self.store.get_announcement()
        return {
            "navigation": _group_pages(pages, categories),
            "stats": {"pages": len(pages), "categories": len(categories)},
            "announcement": _announcement_json(announcement),
            "copy_reset_ms": self.config.copy_reset_ms,
        }

    def get_pages_json(self) -> list[dict[str, Any]]:
        return [_page_summary(page) for page in self.store.list_pages()]

    def get_page_json(self, page_id: str, *, view: ViewState | None = None) -> dict[str, Any] | None:
        """Page with rendered output.

        Without an explicit ``copied_id`` in ``view`` the page's own copy
        state decides which fragment shows as copied.
        """
        page = self.store.get_page(page_id)
        if page is None:
            return None
        view = view or ViewState()
        copy_state = self._copy_states.get(page_id)
        if view.copied_id is None and copy_state is not None:
            view = copy_state.view(view.expanded)
        data = _page_summary(page)
        data["content"] = page.content
        data.update(self.render_preview(page.content, view=view))
        return data

    def get_categories_json(self) -> list[dict[str, Any]]:
        return [category.model_dump(mode="json") for category in self.store.list_categories()]

    def get_announcement_json(self) -> dict[str, Any] | None:
        return _announcement_json(self.store.get_announcement())

    # --- copy feedback ---

    def copy_state_for(self, page_id: str) -> CopyState:
        state = self._copy_states.get(page_id)
        if state is None:
            state = CopyState(
                delay_seconds=self.config.copy_reset_ms / 1000,
                timer_factory=self._timer_factory,
            )
            self._copy_states[page_id] = state
        return state

    def copy_fragment(self, page_id: str, fragment_id: str) -> str | None:
        """Mark a code fragment of a page as copied until its reset timer fires."""
        page = self.store.get_page(page_id)
        if page is None:
            return f"Page {page_id} not found"
        tree = render(page.content, max_depth=self.config.max_dropdown_depth)
        text = find_fragment(tree, fragment_id)
        if text is None:
            return f"Unknown fragment: {fragment_id}"
        self.copy_state_for(page_id).copy(text, fragment_id)
        return None

    # --- writes (return error message on failure, None on success) ---

    def create_page(self, payload: dict[str, Any]) -> str | None:
        try:
            page = WikiPage.model_validate(_without_timestamps(payload))
            self.store.create_page(page)
        except (ValidationError, WikiStoreError, ValueError) as exc:
            return str(exc)
        return None

    def update_page(self, page_id: str, updates: dict[str, Any]) -> str | None:
        try:
            self.store.update_page(page_id, updates)
        except (WikiStoreError, ValueError) as exc:
            return str(exc)
        return None

    def delete_page(self, page_id: str) -> str | None:
        try:
            self.store.delete_page(page_id)
        except (WikiStoreError, ValueError) as exc:
            return str(exc)
        copy_state = self._copy_states.pop(page_id, None)
        if copy_state is not None:
            copy_state.reset()
        return None

    def reorder_pages(self, page_ids: list[str]) -> str | None:
        try:
            self.store.reorder_pages(page_ids)
        except (WikiStoreError, ValueError) as exc:
            return str(exc)
        return None

    def create_category(self, payload: dict[str, Any]) -> str | None:
        try:
            category = Category.model_validate(_without_timestamps(payload))
            self.store.create_category(category)
        except (ValidationError, WikiStoreError, ValueError) as exc:
            return str(exc)
        return None

    def update_category(self, category_id: str, updates: dict[str, Any]) -> str | None:
        try:
            self.store.update_category(category_id, updates)
        except (WikiStoreError, ValueError) as exc:
            return str(exc)
        return None

    def delete_category(self, category_id: str) -> str | None:
        try:
            self.store.delete_category(category_id)
        except (WikiStoreError, ValueError) as exc:
            return str(exc)
        return None

    def set_announcement(self, payload: dict[str, Any]) -> str | None:
        try:
            announcement = Announcement.model_validate(_without_timestamps(payload))
            self.store.set_announcement(announcement)
        except (ValidationError, WikiStoreError, ValueError) as exc:
            return str(exc)
        return None


def _without_timestamps(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if key not in ("created_at", "updated_at")}


def _page_summary(page: WikiPage) -> dict[str, Any]:
    return {
        "id": page.id,
        "title": page.title,
        "category": page.category,
        "order": page.order,
        "updated_at": page.updated_at.isoformat(),
    }


def _announcement_json(announcement: Announcement | None) -> dict[str, Any] | None:
    if announcement is None:
        return None
    return announcement.model_dump(mode="json")


def _group_pages(pages: list[WikiPage], categories: list[Category]) -> list[dict[str, Any]]:
    """Group pages under their category, categories in their own order.

    Pages whose category has no record follow, grouped in first-seen order.
    """
    groups: dict[str, list[dict[str, Any]]] = {category.name: [] for category in categories}
    for page in pages:
        groups.setdefault(page.category, []).append({"id": page.id, "title": page.title})
    return [{"category": name, "pages": items} for name, items in groups.items() if items]
