"""Pure derivations over the loaded record list.

Nothing in here mutates its inputs or raises on missing fields: a record
without an insights block simply drops out of every category aggregate.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import (
    CategoryDetail,
    CategorySummary,
    ConversationRecord,
    DateRange,
    FilterState,
    KeywordCount,
    SentimentTally,
)

EARLIEST_DATE = date(1900, 1, 1)
LATEST_DATE = date(2100, 12, 31)
TOP_KEYWORDS = 10
RECENT_ITEMS = 5


def _fold(term: str) -> str:
    return (term or "").strip().casefold()


def matches_content_search(record: ConversationRecord, term: str) -> bool:
    needle = _fold(term)
    if not needle:
        return True
    if any(needle in keyword.casefold() for keyword in record.keywords):
        return True
    return any(needle in turn.message.casefold() for turn in record.turns)


def matches_conversation_search(record: ConversationRecord, term: str) -> bool:
    """Detail-view search: content search plus party names and issues raised."""
    needle = _fold(term)
    if not needle:
        return True
    if matches_content_search(record, needle):
        return True
    if any(needle in party.name.casefold() for party in record.parties):
        return True
    insights = record.insights
    return bool(insights and needle in insights.issues_raised.casefold())


def matches_date_range(record: ConversationRecord, date_range: DateRange) -> bool:
    if not date_range.active:
        return True
    if record.created_at is None:
        return False
    start = date_range.start or EARLIEST_DATE
    end = date_range.end or LATEST_DATE
    return start <= record.created_at.date() <= end


def matches_sentiment(record: ConversationRecord, sentiments: Set[str]) -> bool:
    if not sentiments:
        return True
    return record.sentiment in sentiments


def compute_working_set(
    records: Sequence[ConversationRecord], state: FilterState
) -> List[ConversationRecord]:
    filtered = list(records)
    if _fold(state.content_search):
        filtered = [r for r in filtered if matches_content_search(r, state.content_search)]
    if state.date_range.active:
        filtered = [r for r in filtered if matches_date_range(r, state.date_range)]
    if state.selected_sentiments:
        filtered = [
            r for r in filtered if matches_sentiment(r, state.selected_sentiments)
        ]
    return filtered


def compute_bubble_visible_set(
    working_set: Sequence[ConversationRecord], selected_categories: Set[str]
) -> List[ConversationRecord]:
    # An empty selection draws nothing; it is not "no filter".
    if not selected_categories:
        return []
    return [r for r in working_set if r.category in selected_categories]


def all_categories(records: Iterable[ConversationRecord]) -> List[str]:
    seen: Dict[str, None] = {}
    for record in records:
        category = record.category
        if category is not None:
            seen.setdefault(category, None)
    return list(seen)


def category_counts(
    records: Iterable[ConversationRecord],
) -> Dict[str, Tuple[int, SentimentTally]]:
    buckets: Dict[str, Tuple[int, SentimentTally]] = {}
    for record in records:
        category = record.category
        if category is None:
            continue
        count, tally = buckets.get(category, (0, SentimentTally()))
        tally.add(record.sentiment)
        buckets[category] = (count + 1, tally)
    return buckets


def compute_category_summaries(
    working_set: Sequence[ConversationRecord],
    all_records: Sequence[ConversationRecord],
    selected_categories: Set[str],
) -> List[CategorySummary]:
    buckets = category_counts(working_set)
    summaries = []
    for category in all_categories(all_records):
        count, tally = buckets.get(category, (0, SentimentTally()))
        summaries.append(
            CategorySummary(
                category=category,
                count=count,
                is_selected=category in selected_categories,
                sentiment=tally,
            )
        )
    return summaries


def _average(total: float, count: int) -> float:
    if count == 0:
        return 0
    return round(total / count, 2)


def compute_category_detail(
    working_set: Sequence[ConversationRecord], category: Optional[str]
) -> CategoryDetail:
    items = [r for r in working_set if category is not None and r.category == category]
    total_duration = 0.0
    total_participants = 0
    tally = SentimentTally()
    keywords: Counter = Counter()
    for record in items:
        insights = record.insights
        total_duration += insights.interaction_duration
        total_participants += insights.number_of_participants
        tally.add(insights.sentiment)
        keywords.update(insights.keywords)

    # most_common sorts stably, so ties keep first-seen order.
    top_keywords = [
        KeywordCount(keyword=k, count=c) for k, c in keywords.most_common(TOP_KEYWORDS)
    ]
    dated = [r for r in items if r.created_at is not None]
    recent = sorted(dated, key=lambda r: r.created_at, reverse=True)[:RECENT_ITEMS]

    return CategoryDetail(
        category=category or "",
        items=items,
        total_duration=total_duration,
        avg_duration=_average(total_duration, len(items)),
        total_participants=total_participants,
        avg_participants=_average(total_participants, len(items)),
        sentiment=tally,
        top_keywords=top_keywords,
        recent_items=recent,
    )
