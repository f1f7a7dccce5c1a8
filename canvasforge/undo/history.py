from __future__ import annotations
import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional
from blinker import Signal
from ..core.doc import Document


logger = logging.getLogger(__name__)


class HistoryState(Enum):
    IDLE = "idle"
    STAGING = "staging"


class HistoryStore:
    """
    Linear undo/redo history of whole-document snapshots, plus a live
    overlay for in-progress edits.

    While the user drags, every intermediate frame goes to the overlay with
    stage(). The overlay is what `current` reports, but it never becomes a
    history entry until commit(); discard() throws it away. This keeps a
    single drag to a single undo step.

    Signals:
        changed: Sent whenever `current` may have changed.
        navigated: Sent after a successful undo or redo.
    """

    def __init__(
        self, document: Optional[Document] = None, limit: int = 20
    ):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self.entries: List[Document] = [document or Document()]
        self.names: List[str] = [""]
        self.index = 0
        self.live: Optional[Document] = None
        self.changed = Signal()
        self.navigated = Signal()

    @property
    def state(self) -> HistoryState:
        if self.live is None:
            return HistoryState.IDLE
        return HistoryState.STAGING

    @property
    def current(self) -> Document:
        if self.live is not None:
            return self.live
        return self.entries[self.index]

    @property
    def committed(self) -> Document:
        """The current history entry, ignoring the live overlay."""
        return self.entries[self.index]

    def can_undo(self) -> bool:
        return self.index > 0

    def can_redo(self) -> bool:
        return self.index < len(self.entries) - 1

    def reset(self, document: Document):
        """Replaces the whole history with a single entry."""
        self.entries = [document]
        self.names = [""]
        self.index = 0
        self.live = None
        self.changed.send(self)

    def stage(self, document: Document):
        """Writes `document` to the live overlay."""
        self.live = document
        self.changed.send(self)

    def discard(self):
        """Drops the live overlay. History entries are not touched."""
        if self.live is None:
            return
        self.live = None
        logger.debug("Discarded live edit")
        self.changed.send(self)

    def commit(self, document: Optional[Document] = None, name: str = ""):
        """
        Pushes `document`, or the live overlay if no document is given, as
        a new entry after the current one. Any redo tail is dropped, the
        oldest entries are dropped beyond the limit, and the overlay is
        cleared. Committing with neither a document nor an overlay does
        nothing.
        """
        if document is None:
            document = self.live
        self.live = None
        if document is None:
            return

        del self.entries[self.index + 1:]
        del self.names[self.index + 1:]
        self.entries.append(document)
        self.names.append(name)
        overflow = len(self.entries) - self.limit
        if overflow > 0:
            del self.entries[:overflow]
            del self.names[:overflow]
        self.index = len(self.entries) - 1
        logger.debug(
            f"Committed '{name}' ({self.index + 1}/{len(self.entries)})"
        )
        self.changed.send(self)

    def undo(self) -> bool:
        self.discard()
        if not self.can_undo():
            return False
        logger.debug(f"Undo '{self.names[self.index]}'")
        self.index -= 1
        self.changed.send(self)
        self.navigated.send(self)
        return True

    def redo(self) -> bool:
        self.discard()
        if not self.can_redo():
            return False
        self.index += 1
        logger.debug(f"Redo '{self.names[self.index]}'")
        self.changed.send(self)
        self.navigated.send(self)
        return True

    @contextmanager
    def live_edit(self, name: str = "") -> Iterator[HistoryStore]:
        """
        Groups the frames staged inside the block into one history entry.
        The overlay is committed when the block exits normally and
        discarded if it raises.
        """
        try:
            yield self
        except BaseException:
            self.discard()
            raise
        self.commit(name=name)
