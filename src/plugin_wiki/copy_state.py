from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import Any, Protocol

from plugin_wiki.domain.render_tree import ViewState

DEFAULT_COPY_RESET_SECONDS = 2.0


class _Timer(Protocol):
    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], Any]], _Timer]


class CopyState:
    """Single slot remembering which code fragment was copied last.

    A copy action starts one reset timer. Copying again cancels the pending
    timer and replaces it, so at most one timer is ever pending and only one
    fragment reports ``copied`` at a time.
    """

    def __init__(
        self,
        *,
        delay_seconds: float = DEFAULT_COPY_RESET_SECONDS,
        timer_factory: TimerFactory = threading.Timer,
        clipboard: Callable[[str], None] | None = None,
    ) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.delay_seconds = delay_seconds
        self._timer_factory = timer_factory
        self._clipboard = clipboard
        self._lock = threading.Lock()
        self._copied_id: str | None = None
        self._timer: _Timer | None = None
        self._generation = 0

    @property
    def copied_id(self) -> str | None:
        with self._lock:
            return self._copied_id

    def is_copied(self, fragment_id: str) -> bool:
        return self.copied_id == fragment_id

    def view(self, expanded: Iterable[str] = ()) -> ViewState:
        """View state for the next render pass, carrying the current copied id."""
        return ViewState(expanded=frozenset(expanded), copied_id=self.copied_id)

    def copy(self, text: str, fragment_id: str) -> None:
        # Clipboard errors propagate; state only changes after a successful write.
        if self._clipboard is not None:
            self._clipboard(text)

        with self._lock:
            self._cancel_timer_locked()
            self._generation += 1
            generation = self._generation
            self._copied_id = fragment_id
            timer = self._timer_factory(self.delay_seconds, lambda: self._expire(generation))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def reset(self) -> None:
        with self._lock:
            self._cancel_timer_locked()
            self._generation += 1
            self._copied_id = None

    def cancel(self) -> None:
        """Drop the pending reset timer but keep the current id."""
        with self._lock:
            self._cancel_timer_locked()

    def _expire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._copied_id = None
            self._timer = None

    def _cancel_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
