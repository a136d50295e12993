"""Outbound change notifications.

Transports (a websocket hub, an MCP session, a test) subscribe a callback and
receive every ``ChangeEvent`` published after a successful mutation. Delivery
is best effort: a failing subscriber is logged and skipped, never retried, and
never fails the mutation that triggered it.
"""

import logging
import threading
from typing import Callable, List, Optional

from notetree.models.schema import ChangeEvent, ChangeType, PathKind
from notetree.paths import name_of_folder, name_of_note

logger = logging.getLogger(__name__)

Subscriber = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """In-process publish/subscribe hub for change events."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], bool]:
        """Register ``callback``. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> bool:
        """Remove ``callback``. False if it was not subscribed."""
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                return False
        return True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every subscriber.

        Returns:
            Number of subscribers that accepted the event.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Subscriber {callback!r} failed on {event.type.value}: {e}")
                continue
            delivered += 1
        logger.debug(f"Published {event.type.value} for {event.path} to {delivered} subscribers")
        return delivered

    # ---- event helpers ----

    def directory_changed(self, path: str, source: Optional[str] = None) -> ChangeEvent:
        """The listing of folder ``path`` changed."""
        event = ChangeEvent(
            type=ChangeType.DIRECTORY_CHANGED,
            path=path,
            kind=PathKind.FOLDER,
            source=source,
        )
        self.publish(event)
        return event

    def file_changed(
        self, path: str, kind: PathKind = PathKind.FILE, source: Optional[str] = None
    ) -> ChangeEvent:
        """The content of the note at ``path`` changed."""
        event = ChangeEvent(
            type=ChangeType.FILE_CHANGED,
            path=path,
            kind=kind,
            name=name_of_note(path) if kind == PathKind.FILE else None,
            source=source,
        )
        self.publish(event)
        return event

    def note_renamed(
        self, old_path: str, new_path: str, source: Optional[str] = None
    ) -> ChangeEvent:
        event = ChangeEvent(
            type=ChangeType.NOTE_RENAMED,
            path=new_path,
            kind=PathKind.FILE,
            old_path=old_path,
            new_path=new_path,
            name=name_of_note(new_path),
            source=source,
        )
        self.publish(event)
        return event

    def folder_renamed(
        self, old_path: str, new_path: str, source: Optional[str] = None
    ) -> ChangeEvent:
        event = ChangeEvent(
            type=ChangeType.FOLDER_RENAMED,
            path=new_path,
            kind=PathKind.FOLDER,
            old_path=old_path,
            new_path=new_path,
            name=name_of_folder(new_path),
            source=source,
        )
        self.publish(event)
        return event
