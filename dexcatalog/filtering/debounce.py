"""
Trailing debounce for raw search input.

Rapid keystrokes collapse into a single commit once the input has been
quiet for the debounce delay. Clearing the input (empty after trimming)
commits "" at once and drops any pending commit.
"""

import logging
from collections.abc import Callable

from dexcatalog.config import SEARCH_DEBOUNCE_DELAY
from dexcatalog.services.clock import Clock, TimerHandle

logger = logging.getLogger(__name__)


class SearchDebouncer:
    """
    Debounces search input on a Clock.

    Args:
        clock: Clock that schedules the trailing commit
        on_commit: Receives the committed (trimmed, lower-cased) term
        delay: Quiet period in seconds
    """

    def __init__(
        self,
        clock: Clock,
        on_commit: Callable[[str], None],
        delay: float = SEARCH_DEBOUNCE_DELAY,
    ) -> None:
        self.clock = clock
        self.on_commit = on_commit
        self.delay = delay
        self._pending: TimerHandle | None = None
        self._pending_term: str | None = None

    @property
    def pending_term(self) -> str | None:
        """Term waiting to be committed, if any."""
        return self._pending_term

    def push(self, raw: str) -> None:
        """Register new raw input."""
        term = raw.strip().lower()
        self.cancel()

        if not term:
            logger.debug("Search cleared")
            self.on_commit("")
            return

        self._pending_term = term
        self._pending = self.clock.call_later(self.delay, self._fire)

    def flush(self) -> None:
        """Commit the pending term now, if there is one."""
        if self._pending is not None:
            self._pending.cancel()
            self._fire()

    def cancel(self) -> None:
        """Drop the pending commit without firing it."""
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self._pending_term = None

    def _fire(self) -> None:
        term = self._pending_term
        self._pending = None
        self._pending_term = None
        if term is not None:
            logger.debug("Search committed: %r", term)
            self.on_commit(term)
