"""
User-visible notifications.

Non-fatal failures and hints are surfaced as dismissible notifications. They
never block the flow; front ends subscribe to render them and every
notification is also logged.
"""

import itertools
import logging
from typing import Callable, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

Variant = Literal["default", "destructive"]

_ids = itertools.count(1)


class Notification(BaseModel):
    """A dismissible message shown to the user."""

    id: int = Field(default_factory=lambda: next(_ids))
    title: str
    description: str = ""
    variant: Variant = "default"


Listener = Callable[[Notification], None]


class Notifier:
    """Collects notifications and fans them out to listeners."""

    def __init__(self) -> None:
        self._active: list[Notification] = []
        self._listeners: list[Listener] = []

    @property
    def active(self) -> list[Notification]:
        """Notifications not yet dismissed, oldest first."""
        return list(self._active)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def notify(self, title: str, description: str = "", variant: Variant = "default") -> Notification:
        """
        Show a notification.

        Args:
            title: Short statement of what happened (e.g. "Cloud save failed").
            description: Underlying error message or hint.
            variant: "destructive" for failures.

        Returns:
            The notification, so callers can dismiss it later.
        """
        notification = Notification(title=title, description=description, variant=variant)
        self._active.append(notification)

        level = logging.WARNING if variant == "destructive" else logging.INFO
        logger.log(level, f"[NOTICE] {title}: {description}" if description else f"[NOTICE] {title}")

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Notification listener failed: {e}")
        return notification

    def error(self, title: str, error: BaseException | str | None = None) -> Notification:
        """Shorthand for a destructive notification carrying an error message."""
        description = str(error) if error else ""
        return self.notify(title, description or "Try again later", variant="destructive")

    def dismiss(self, notification_id: int) -> None:
        self._active = [n for n in self._active if n.id != notification_id]

    def clear(self) -> None:
        self._active.clear()

    def titles(self) -> list[str]:
        return [n.title for n in self._active]
