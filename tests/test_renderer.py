from vconlens.aggregation import compute_category_detail, compute_category_summaries
from vconlens.models import Party, TranscriptTurn
from vconlens.renderer import (
    display_name,
    filter_conversations,
    render_category_detail,
    render_summary_table,
    render_transcript,
    transcript_side,
)


def test_render_detail_includes_frontmatter(sample_records):
    detail = compute_category_detail(sample_records, "Billing")
    note = render_category_detail(detail)
    assert note.startswith("---\ncategory: \"Billing\"\nconversations: 3\n---")
    assert "- Satisfaction: 67%" in note
    assert "- positive: 2 (67%)" in note
    assert "refund (2), invoice (2)" in note
    assert "3 of 3 conversations" in note


def test_render_detail_search(sample_records):
    detail = compute_category_detail(sample_records, "Billing")
    note = render_category_detail(detail, search="sam")
    assert 'search: "sam"' in note
    assert "1 of 3 conversations" in note
    assert "[b1]" in note

    empty = render_category_detail(detail, search="zzz")
    assert 'No conversations match "zzz"' in empty


def test_render_empty_category(sample_records):
    note = render_category_detail(compute_category_detail(sample_records, "Nope"))
    assert "No conversations available in this category" in note


def test_filter_conversations_blank_term(sample_records):
    assert filter_conversations(sample_records, "  ") == sample_records


def test_summary_table_marks_selection(sample_records):
    table = render_summary_table(
        compute_category_summaries(sample_records, sample_records, {"Support"})
    )
    assert "| Billing |  | 3 | 2 | 0 | 1 |" in table
    assert "| Support | x | 1 | 0 | 1 | 0 |" in table


def test_transcript_sides_follow_agent_role():
    parties = [Party(name="Ava", role="agent"), Party(name="Sam", role="customer")]
    assert transcript_side(TranscriptTurn("Ava", "hi"), parties) == "left"
    assert transcript_side(TranscriptTurn("agent", "hi"), []) == "left"
    assert transcript_side(TranscriptTurn("Sam", "hi"), parties) == "right"


def test_display_name_hides_people():
    assert display_name(Party(name="HelpBot", role=""), 0) == "HelpBot"
    assert display_name(Party(name="Ava", role="agent"), 0) == "Ava"
    assert display_name(Party(name="Sam", role="customer"), 1) == "User 2"


def test_render_transcript(sample_records):
    text = render_transcript(sample_records[0])
    assert text.startswith("# Conversation b1")
    assert "- Ava (agent)" in text
    assert "- User 2 (customer)" in text
    assert "< agent: Hello" in text
    assert "> customer: I need a REFUND" in text
    assert "- Sentiment: positive" in text
