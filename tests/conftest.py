from datetime import datetime, timezone

import pytest

from vconlens.models import (
    ConversationRecord,
    InsightsBlock,
    Party,
    TranscriptBlock,
    TranscriptTurn,
)


def build_record(
    record_id,
    category=None,
    sentiment=None,
    keywords=(),
    messages=(),
    created=None,
    duration=0.0,
    participants=0,
    parties=(),
    issues="",
):
    analysis = []
    if messages:
        analysis.append(
            TranscriptBlock(
                turns=[TranscriptTurn(speaker=s, message=m) for s, m in messages]
            )
        )
    if category is not None or sentiment is not None or keywords:
        analysis.append(
            InsightsBlock(
                category=category,
                sentiment=sentiment,
                keywords=list(keywords),
                issues_raised=issues,
                interaction_duration=duration,
                number_of_participants=participants,
            )
        )
    return ConversationRecord(
        id=record_id,
        created_at=created,
        parties=[Party(name=n, role=r) for n, r in parties],
        analysis=analysis,
    )


def day(d):
    return datetime(2024, 3, d, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def sample_records():
    """Three Billing (2 positive, 1 negative), one Support, one uncategorised."""
    return [
        build_record(
            "b1", "Billing", "positive", ["refund", "invoice"],
            [("agent", "Hello"), ("customer", "I need a REFUND")],
            day(1), duration=4.0, participants=2,
            parties=[("Ava", "agent"), ("Sam", "customer")],
        ),
        build_record(
            "b2", "Billing", "positive", ["invoice"],
            [("agent", "Hi"), ("customer", "Where is my invoice")],
            day(5), duration=6.0, participants=2,
        ),
        build_record(
            "s1", "Support", "neutral", ["password"],
            [("agent", "Reset done")], day(10), duration=3.0, participants=2,
        ),
        build_record(
            "b3", "Billing", "negative", ["refund"],
            [("customer", "Still no refund")], day(20), duration=5.0, participants=3,
            issues="Refund delayed twice",
        ),
        build_record("x1", messages=[("customer", "random chatter")], created=day(2)),
    ]
