"""
Paginated, selectable search results.
"""

import logging
import math
from typing import List, Optional

from crate_seek.core.interfaces import CrateDetail, CrateRecord
from crate_seek.search.merge import hydrate_record


logger = logging.getLogger(__name__)


class _SelectLast:
    """Selection sentinel meaning "the last record, whatever the length is"."""

    def __repr__(self) -> str:
        return "SELECT_LAST"


SELECT_LAST = _SelectLast()


class ResultSet:
    """
    One page of merged search results plus pagination and selection state.

    ``records`` keeps insertion order (source priority, then arrival order).
    ``total_count`` is the sum of every source's match count, not just the
    records materialized on this page.
    """

    def __init__(
        self,
        records: Optional[List[CrateRecord]] = None,
        total_count: int = 0,
        current_page: int = 1,
        page_size: int = 100
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be > 0, got {page_size}")
        self.records: List[CrateRecord] = list(records or [])
        self.total_count = total_count
        self.page_size = page_size
        self._current_page = 1
        self._selection = None
        self.set_current_page(current_page)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def __repr__(self) -> str:
        return (
            f"ResultSet(records={len(self.records)}, total_count={self.total_count}, "
            f"page={self._current_page}/{self.page_count()})"
        )

    # Pagination

    def page_count(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def current_page(self) -> int:
        return self._current_page

    def set_current_page(self, page: int) -> None:
        """Set the current page, clamped into [1, max(page_count, 1)]."""
        self._current_page = min(max(page, 1), max(self.page_count(), 1))

    def clamp_page(self, page: int) -> int:
        return min(max(page, 1), max(self.page_count(), 1))

    def has_next_page(self) -> bool:
        return self._current_page * self.page_size < self.total_count

    def has_prev_page(self) -> bool:
        return self._current_page > 1

    def items_in_previous_pages(self) -> int:
        return (self._current_page - 1) * self.page_size

    # Selection

    def selected_index(self) -> Optional[int]:
        """
        Resolve the stored selection to a concrete index.

        Returns:
            The index of the selected record, or None when nothing is selected
            or the stored index no longer points at a record.
        """
        if self._selection is None or not self.records:
            return None
        if self._selection is SELECT_LAST:
            return len(self.records) - 1
        if self._selection >= len(self.records):
            return None
        return self._selection

    def selected(self) -> Optional[CrateRecord]:
        index = self.selected_index()
        if index is None:
            return None
        return self.records[index]

    def select(self, index: Optional[int]) -> Optional[CrateRecord]:
        if index is not None and index < 0:
            raise ValueError(f"selection index must be >= 0, got {index}")
        if index is not None and index >= len(self.records):
            index = None
        self._selection = index
        return self.selected()

    def select_next(self) -> Optional[CrateRecord]:
        current = self.selected_index()
        if current is None:
            self._selection = 0
        else:
            self._selection = min(current + 1, max(len(self.records) - 1, 0))
        return self.selected()

    def select_previous(self) -> Optional[CrateRecord]:
        current = self.selected_index()
        if current is None:
            self._selection = SELECT_LAST
        else:
            self._selection = max(current - 1, 0)
        return self.selected()

    def select_first(self) -> Optional[CrateRecord]:
        self._selection = 0
        return self.selected()

    def select_last(self) -> Optional[CrateRecord]:
        self._selection = SELECT_LAST
        return self.selected()

    def select_default(self) -> Optional[CrateRecord]:
        """Select the first exact match, or the first record when there is none."""
        for index, record in enumerate(self.records):
            if record.exact_match:
                return self.select(index)
        return self.select(0 if self.records else None)

    # Lookup and in-place updates

    def find(self, crate_id: str) -> Optional[CrateRecord]:
        for record in self.records:
            if record.id == crate_id:
                return record
        return None

    def apply_detail(self, crate_id: str, detail: CrateDetail) -> bool:
        """
        Merge extended metadata into the record with the given id.

        Returns:
            True if a record was updated, False if no record has that id.
        """
        record = self.find(crate_id)
        if record is None:
            logger.debug(f"Discarding metadata for {crate_id}: not in current results")
            return False
        hydrate_record(record, detail)
        return True
