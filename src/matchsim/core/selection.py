"\"\"\"Selection pointer over the active queue.\"\"\""

from __future__ import annotations

import structlog

from ..schemas import CandidateProfile
from .curation import QueueCurator
from .events import Signal


class QueueCursor:
    """Track which queued candidate is currently being reviewed.

    The cursor follows the curator: any repopulation clears the selection.
    ``selection_changed`` fires with the new candidate (or ``None``) only when
    the selection actually moves.
    """

    def __init__(self, curator: QueueCurator) -> None:
        self._curator = curator
        self._index = -1
        self._logger = structlog.get_logger(__name__)

        self.selection_changed = Signal("selection_changed")
        curator.queue_changed.connect(self._on_queue_changed)

    @property
    def current(self) -> CandidateProfile | None:
        return self._curator.candidate_at(self._index)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def has_selection(self) -> bool:
        return self.current is not None

    @property
    def has_next(self) -> bool:
        return self._index + 1 < self._curator.count

    @property
    def has_previous(self) -> bool:
        return self._index > 0

    def select_index(self, index: int) -> bool:
        if not 0 <= index < self._curator.count:
            return False
        self._move(index)
        return True

    def select_candidate(self, candidate: CandidateProfile | str | None) -> bool:
        index = self._curator.index_of(candidate)
        if index < 0:
            return False
        self._move(index)
        return True

    def select_first(self) -> bool:
        return self.select_index(0)

    def select_next(self) -> bool:
        return self.select_index(self._index + 1)

    def select_previous(self) -> bool:
        if self._index <= 0:
            return False
        return self.select_index(self._index - 1)

    def select_next_pending(self) -> bool:
        """Select the first pending candidate after the current one, wrapping."""
        entries = self._curator.entries
        total = len(entries)
        if total == 0:
            return False
        start = self._index + 1 if self._index >= 0 else 0
        for offset in range(total):
            index = (start + offset) % total
            if entries[index].is_pending:
                self._move(index)
                return True
        return False

    def clear(self) -> None:
        self._move(-1)

    def _move(self, index: int) -> None:
        if index == self._index:
            return
        self._index = index
        self._logger.debug("selection.changed", index=index)
        self.selection_changed.emit(self.current)

    def _on_queue_changed(self) -> None:
        self.clear()
