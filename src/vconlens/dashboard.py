"""Dashboard context: the one owner of records, filters and layout."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .aggregation import (
    category_counts,
    compute_bubble_visible_set,
    compute_category_detail,
    compute_category_summaries,
    compute_working_set,
)
from .filters import FilterController
from .layout import ForceLayout
from .models import CategoryDetail, CategorySummary, ConversationRecord
from .store import RecordStore

logger = logging.getLogger("vconlens")


@dataclass
class DashboardViews:
    working_set: List[ConversationRecord] = field(default_factory=list)
    bubble_visible: List[ConversationRecord] = field(default_factory=list)
    summaries: List[CategorySummary] = field(default_factory=list)
    detail: Optional[CategoryDetail] = None


class Dashboard:
    """Recomputes every derived view after each state change.

    All mutation happens on the caller's thread; the GUI only calls in from
    the tkinter main loop.
    """

    def __init__(
        self,
        store: RecordStore,
        layout: Optional[ForceLayout] = None,
        filters: Optional[FilterController] = None,
    ) -> None:
        self.store = store
        self.layout = layout or ForceLayout(800, 600)
        self.filters = filters or FilterController()
        self.views = DashboardViews()

    @property
    def records(self) -> List[ConversationRecord]:
        return self.store.records

    def derive(self) -> DashboardViews:
        state = self.filters.state
        working = compute_working_set(self.records, state)
        bubbles = compute_bubble_visible_set(working, state.selected_categories)
        summaries = compute_category_summaries(
            working, self.records, state.selected_categories
        )
        detail = None
        if state.detail_category is not None:
            detail = compute_category_detail(working, state.detail_category)
        return DashboardViews(
            working_set=working,
            bubble_visible=bubbles,
            summaries=summaries,
            detail=detail,
        )

    def refresh(self) -> DashboardViews:
        self.filters.on_records_loaded(self.records)
        self.views = self.derive()
        counts = category_counts(self.views.bubble_visible)
        self.layout.sync(
            {category: (count, tally.mood()) for category, (count, tally) in counts.items()}
        )
        return self.views

    def load_more(self) -> int:
        added = self.store.load_more()
        self.refresh()
        return added

    def select_all(self) -> DashboardViews:
        self.filters.select_all(self.derive().summaries)
        return self.refresh()

    def pointer_up(self, x: float, y: float) -> Optional[str]:
        category = self.layout.pointer_up(x, y)
        if category is not None:
            self.filters.open_detail(category)
            self.refresh()
        return category
