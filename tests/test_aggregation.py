from datetime import date, datetime, timezone

from vconlens.aggregation import (
    all_categories,
    category_counts,
    compute_bubble_visible_set,
    compute_category_detail,
    compute_category_summaries,
    compute_working_set,
    matches_content_search,
    matches_conversation_search,
)
from vconlens.models import DateRange, FilterState


def _utc(text):
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


def _scenario(make_record):
    return [
        make_record("a", "Billing", "negative", created=_utc("2024-01-01")),
        make_record("b", "Billing", "positive", created=_utc("2024-02-01")),
        make_record("c", "Support", "neutral", created=_utc("2024-01-15")),
    ]


def test_sentiment_filter_keeps_category_universe(make_record):
    records = _scenario(make_record)
    state = FilterState(selected_sentiments={"negative"})

    working = compute_working_set(records, state)
    summaries = compute_category_summaries(working, records, set())

    assert [r.id for r in working] == ["a"]
    assert [(s.category, s.count) for s in summaries] == [("Billing", 1), ("Support", 0)]


def test_summaries_ignore_selection(sample_records):
    working = compute_working_set(sample_records, FilterState())
    everything = compute_category_summaries(working, sample_records, {"Billing", "Support"})
    nothing = compute_category_summaries(working, sample_records, set())

    assert [s.category for s in everything] == [s.category for s in nothing]
    assert [s.is_selected for s in everything] == [True, True]
    assert [s.is_selected for s in nothing] == [False, False]


def test_summary_sentiment_tally(sample_records):
    summaries = compute_category_summaries(sample_records, sample_records, set())
    billing = summaries[0]
    assert billing.category == "Billing"
    assert billing.count == 3
    assert (billing.sentiment.positive, billing.sentiment.neutral, billing.sentiment.negative) == (2, 0, 1)


def test_empty_selection_draws_nothing(sample_records):
    assert compute_bubble_visible_set([], {"Billing"}) == []
    assert compute_bubble_visible_set(sample_records, set()) == []


def test_bubble_visible_preserves_order(sample_records):
    visible = compute_bubble_visible_set(sample_records, {"Billing"})
    assert [r.id for r in visible] == ["b1", "b2", "b3"]


def test_uncategorised_records_are_not_a_category(sample_records):
    assert all_categories(sample_records) == ["Billing", "Support"]
    assert None not in category_counts(sample_records)
    visible = compute_bubble_visible_set(sample_records, {"Billing", "Support"})
    assert "x1" not in [r.id for r in visible]


def test_content_search_is_case_insensitive(make_record):
    record = make_record("k", "Billing", keywords=["refund policy"])
    assert matches_content_search(record, "REFUND")
    assert not matches_content_search(record, "invoice")


def test_content_search_reads_transcript(sample_records):
    state = FilterState(content_search="where is my")
    assert [r.id for r in compute_working_set(sample_records, state)] == ["b2"]


def test_conversation_search_matches_parties_and_issues(sample_records):
    b1, b3 = sample_records[0], sample_records[3]
    assert matches_conversation_search(b1, "ava")
    assert matches_conversation_search(b3, "delayed")
    assert not matches_content_search(b3, "delayed")


def test_date_range_is_inclusive(sample_records):
    state = FilterState(date_range=DateRange(start=date(2024, 3, 5), end=date(2024, 3, 10)))
    assert [r.id for r in compute_working_set(sample_records, state)] == ["b2", "s1"]


def test_open_ended_date_range(sample_records):
    state = FilterState(date_range=DateRange(start=date(2024, 3, 10)))
    assert [r.id for r in compute_working_set(sample_records, state)] == ["s1", "b3"]


def test_date_range_drops_undated_records(make_record):
    undated = make_record("u", "Billing")
    state = FilterState(date_range=DateRange(end=date(2030, 1, 1)))
    assert compute_working_set([undated], state) == []


def test_detail_for_empty_category_is_zero(sample_records):
    detail = compute_category_detail(sample_records, "Nope")
    assert detail.items == []
    assert detail.avg_duration == 0
    assert detail.avg_participants == 0
    assert detail.satisfaction_percent == 0


def test_detail_averages_match_totals(sample_records):
    detail = compute_category_detail(sample_records, "Billing")
    count = len(detail.items)
    assert count == 3
    assert detail.total_duration == 15.0
    assert detail.total_participants == 7
    assert abs(detail.avg_duration * count - detail.total_duration) < 0.05
    assert abs(detail.avg_participants * count - detail.total_participants) < 0.05
    assert detail.avg_participants == 2.33


def test_detail_keywords_ranked_with_stable_ties(make_record):
    records = [
        make_record(f"r{i}", "Sales", keywords=[f"k{i}", "shared"] + (["pair"] if i < 2 else []))
        for i in range(12)
    ]
    detail = compute_category_detail(records, "Sales")
    counts = [k.count for k in detail.top_keywords]

    assert len(detail.top_keywords) == 10
    assert counts == sorted(counts, reverse=True)
    assert [k.keyword for k in detail.top_keywords[:4]] == ["shared", "pair", "k0", "k1"]


def test_detail_recent_items(make_record):
    records = [
        make_record(f"r{d}", "Sales", created=_utc(f"2024-05-{d:02d}")) for d in range(1, 8)
    ]
    records.append(make_record("undated", "Sales"))
    detail = compute_category_detail(records, "Sales")
    stamps = [r.created_at for r in detail.recent_items]

    assert len(stamps) == 5
    assert stamps == sorted(stamps, reverse=True)
    assert "undated" not in [r.id for r in detail.recent_items]
    assert detail.recent_items[0].id == "r7"


def test_detail_satisfaction(sample_records):
    detail = compute_category_detail(sample_records, "Billing")
    assert detail.satisfaction_percent == 67
