"""
Liveness tokens.

Every asynchronous task started on behalf of a view receives a token and
checks `active` after each suspension point and before writing shared
state. Cancelling never interrupts a task; it only makes all later writes
no-ops.

A child token is cancelled when it or any ancestor is cancelled. Views hand
out one child per acquisition pass so a superseded pass stops writing
without tearing down the whole view.
"""

import logging

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag."""

    __slots__ = ("_active", "_parent", "name")

    def __init__(self, name: str = "view", parent: "CancellationToken | None" = None) -> None:
        self._active = True
        self._parent = parent
        self.name = name

    @property
    def active(self) -> bool:
        if not self._active:
            return False
        return self._parent is None or self._parent.active

    @property
    def cancelled(self) -> bool:
        return not self.active

    def cancel(self) -> None:
        if self._active:
            logger.debug("Cancelling token %s", self.name)
        self._active = False

    def child(self, name: str) -> "CancellationToken":
        return CancellationToken(name, parent=self)

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled"
        return f"CancellationToken({self.name!r}, {state})"
