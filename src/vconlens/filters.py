"""Filter state transitions."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from .aggregation import all_categories
from .models import CategorySummary, ConversationRecord, DateRange, FilterState

logger = logging.getLogger("vconlens")


class FilterController:
    """Owns the single FilterState of a dashboard session.

    The category selection auto-populates to every known category the first
    time records arrive. ``reset_filters`` re-arms that default, which then
    applies on the next page arrival rather than immediately.
    """

    def __init__(self, state: Optional[FilterState] = None) -> None:
        self.state = state or FilterState()
        self._auto_select_armed = True
        self._seen_records = 0

    def on_records_loaded(self, records: Sequence[ConversationRecord]) -> bool:
        grew = len(records) > self._seen_records
        self._seen_records = len(records)
        if not (grew and self._auto_select_armed and records):
            return False
        if self.state.selected_categories:
            self._auto_select_armed = False
            return False
        self.state.selected_categories = set(all_categories(records))
        self._auto_select_armed = False
        logger.debug(
            "Auto-selected %d categories", len(self.state.selected_categories)
        )
        return True

    def toggle_category(self, category: str) -> None:
        selected = set(self.state.selected_categories)
        selected ^= {category}
        self.state.selected_categories = selected
        logger.debug("Toggled category %r (selected=%d)", category, len(selected))

    def reset_filters(self) -> None:
        self.state = FilterState()
        self._auto_select_armed = True
        logger.debug("Filters reset")

    def select_all(self, summaries: Iterable[CategorySummary]) -> None:
        self.state.selected_categories = {s.category for s in summaries}
        logger.debug("Selected all %d categories", len(self.state.selected_categories))

    def set_content_search(self, term: str) -> None:
        self.state.content_search = term
        logger.debug("Content search: %r", term)

    def set_date_range(self, start: Optional[date], end: Optional[date]) -> None:
        self.state.date_range = DateRange(start=start, end=end)
        logger.debug("Date range: %s .. %s", start, end)

    def set_sentiment_filter(self, sentiments: Iterable[str]) -> None:
        self.state.selected_sentiments = set(sentiments)
        logger.debug("Sentiments: %s", sorted(self.state.selected_sentiments))

    def toggle_sentiment(self, sentiment: str) -> None:
        self.set_sentiment_filter(self.state.selected_sentiments ^ {sentiment})

    def open_detail(self, category: str) -> None:
        self.state.detail_category = category
        logger.debug("Opened detail for %r", category)

    def close_detail(self, category: Optional[str] = None) -> None:
        """Clear the open detail; with ``category``, only if it is still the open one."""
        if category is not None and self.state.detail_category != category:
            return
        self.state.detail_category = None
