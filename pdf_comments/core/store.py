import logging
import threading
from typing import Iterable, List, Mapping, Optional, Sequence

from pdf_comments.core.types import (
    COLUMN_ORDER,
    Column,
    CommentRecord,
    DEFAULT_COLUMN_VISIBILITY,
)

logger = logging.getLogger(__name__)

SELECTION_INCLUDE = "include"
SELECTION_EXCLUDE = "exclude"


class CommentStore:
    """Session state shared by the tools: the extracted records, the current
    row selection and which columns are visible.

    An empty selection means "every record". Comment is always visible.
    Extractions take a generation token from `begin_extraction`; only the
    newest token may commit, so a slow stale extraction cannot overwrite a
    newer one.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[CommentRecord] = []
        self._selection: List[int] = []
        self._visibility = dict(DEFAULT_COLUMN_VISIBILITY)
        self._source_name = ""
        self._generation = 0

    # --- Records ---

    @property
    def records(self) -> List[CommentRecord]:
        with self._lock:
            return list(self._records)

    @property
    def source_name(self) -> str:
        with self._lock:
            return self._source_name

    def replace_all(self, records: Iterable[CommentRecord], source_name: Optional[str] = None) -> None:
        new_records = list(records)
        with self._lock:
            self._generation += 1
            self._records = new_records
            self._selection = []
            if source_name is not None:
                self._source_name = source_name

    # --- Extraction generations ---

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def begin_extraction(self, source_name: str) -> int:
        with self._lock:
            self._generation += 1
            self._source_name = source_name
            return self._generation

    def commit_extraction(self, token: int, records: Iterable[CommentRecord]) -> bool:
        new_records = list(records)
        with self._lock:
            if token != self._generation:
                logger.info(f"Discarding stale extraction (generation {token}, current {self._generation})")
                return False
            self._records = new_records
            self._selection = []
            return True

    def fail_extraction(self, token: int) -> bool:
        """Clear the records after a failed extraction, unless a newer extraction took over."""
        with self._lock:
            if token != self._generation:
                return False
            self._records = []
            self._selection = []
            return True

    # --- Selection ---

    @property
    def selection(self) -> List[int]:
        with self._lock:
            return list(self._selection)

    def set_selection(self, kind: str, ids: Iterable[int], count: Optional[int] = None) -> List[int]:
        """Normalize an inclusion or exclusion set to a sorted index list.

        `count` defaults to the number of records held. Indices outside
        0..count-1 are dropped.
        """
        kind = str(kind).strip().lower()
        if kind not in (SELECTION_INCLUDE, SELECTION_EXCLUDE):
            raise ValueError(f"Unknown selection mode: {kind!r} (expected 'include' or 'exclude')")
        wanted = {int(i) for i in ids}
        with self._lock:
            total = len(self._records) if count is None else int(count)
            out_of_range = sorted(i for i in wanted if i < 0 or i >= total)
            if out_of_range:
                logger.warning(f"Ignoring selection ids outside 0..{total - 1}: {out_of_range}")
            if kind == SELECTION_INCLUDE:
                selected = sorted(i for i in wanted if 0 <= i < total)
            else:
                selected = [i for i in range(total) if i not in wanted]
            self._selection = selected
            return list(selected)

    def clear_selection(self) -> None:
        with self._lock:
            self._selection = []

    def effective_export_set(self) -> List[CommentRecord]:
        with self._lock:
            if not self._selection:
                return list(self._records)
            return [self._records[i] for i in self._selection if i < len(self._records)]

    # --- Columns ---

    @property
    def column_visibility(self) -> dict:
        with self._lock:
            return dict(self._visibility)

    def set_column_visibility(self, visibility: Mapping) -> dict:
        updates = {Column(key): bool(visible) for key, visible in visibility.items()}
        with self._lock:
            self._visibility.update(updates)
            self._visibility[Column.COMMENT] = True
            return dict(self._visibility)

    def visible_columns(self) -> List[Column]:
        with self._lock:
            return [c for c in COLUMN_ORDER if self._visibility.get(c)]

    # --- Lifecycle ---

    def unload(self) -> None:
        """Forget the current document but keep the column settings."""
        with self._lock:
            self._generation += 1
            self._records = []
            self._selection = []
            self._source_name = ""

    def reset(self) -> None:
        with self._lock:
            self.unload()
            self._visibility = dict(DEFAULT_COLUMN_VISIBILITY)


def columns_from_names(names: Sequence[str]) -> List[Column]:
    """Map loose names ("page", "Author") to columns in canonical order, Comment included."""
    wanted = {Column.COMMENT}
    for name in names:
        name = name.strip()
        if not name:
            continue
        matches = [c for c in Column if c.value.lower() == name.lower()]
        if not matches:
            raise ValueError(f"Unknown column: {name!r}")
        wanted.add(matches[0])
    return [c for c in COLUMN_ORDER if c in wanted]
