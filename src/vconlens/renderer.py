"""Markdown rendering for category detail and transcripts."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from .aggregation import matches_conversation_search
from .models import (
    SENTIMENTS,
    CategoryDetail,
    CategorySummary,
    ConversationRecord,
    Party,
    TranscriptTurn,
)
from .record_io import parse_timestamp

BOT_MARKERS = ("bot", "agent", "assistant")


def _yaml_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f"\"{escaped}\""


def _clean_text(value: str) -> str:
    return " ".join(value.split())


def _format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "unknown"
    return value.strftime("%Y-%m-%d %H:%M")


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def filter_conversations(
    items: Sequence[ConversationRecord], term: str
) -> List[ConversationRecord]:
    if not term.strip():
        return list(items)
    return [r for r in items if matches_conversation_search(r, term)]


def display_name(party: Party, index: int) -> str:
    """Bots and agents keep their name; people are anonymised."""
    role = (party.role or "").lower()
    name = (party.name or "").lower()
    if any(m in role for m in BOT_MARKERS) or any(m in name for m in BOT_MARKERS[:2]):
        return party.name
    return "User" if index == 0 else f"User {index + 1}"


def transcript_side(turn: TranscriptTurn, parties: Sequence[Party]) -> str:
    speaker = turn.speaker.strip().lower()
    if speaker == "agent":
        return "left"
    for party in parties:
        if party.name.strip().lower() == speaker and "agent" in party.role.lower():
            return "left"
    return "right"


def dialog_span_minutes(record: ConversationRecord) -> int:
    if len(record.dialog) < 2:
        return 0
    first = parse_timestamp(record.dialog[0].start)
    last = parse_timestamp(record.dialog[-1].start)
    if first is None or last is None:
        return 0
    return round((last - first).total_seconds() / 60)


def render_summary_table(summaries: Sequence[CategorySummary]) -> str:
    lines = ["| Category | Selected | Count | + | = | - |", "|---|---|---|---|---|---|"]
    for s in summaries:
        mark = "x" if s.is_selected else ""
        lines.append(
            f"| {_clean_text(s.category)} | {mark} | {s.count} | "
            f"{s.sentiment.positive} | {s.sentiment.neutral} | {s.sentiment.negative} |"
        )
    return "\n".join(lines)


def render_category_detail(detail: CategoryDetail, search: str = "") -> str:
    total = len(detail.items)
    shown = filter_conversations(detail.items, search)
    lines: List[str] = []
    lines.append("---")
    lines.append(f"category: {_yaml_quote(detail.category)}")
    lines.append(f"conversations: {total}")
    if search.strip():
        lines.append(f"search: {_yaml_quote(search.strip())}")
    lines.append("---")
    lines.append("")
    lines.append(f"# {_clean_text(detail.category)}")
    lines.append("")
    lines.append(f"- Total duration (min): {detail.total_duration:g}")
    lines.append(f"- Average duration (min): {detail.avg_duration:g}")
    lines.append(f"- Total participants: {detail.total_participants}")
    lines.append(f"- Average participants: {detail.avg_participants:g}")
    lines.append(f"- Satisfaction: {detail.satisfaction_percent}%")
    lines.append("")
    lines.append("## Sentiment")
    lines.append("")
    for sentiment in SENTIMENTS:
        count = getattr(detail.sentiment, sentiment)
        lines.append(f"- {sentiment}: {count} ({_percent(count, total)}%)")
    lines.append("")
    if detail.top_keywords:
        lines.append("## Top Keywords")
        lines.append("")
        lines.append(", ".join(f"{k.keyword} ({k.count})" for k in detail.top_keywords))
        lines.append("")
    if detail.recent_items:
        lines.append("## Recent")
        lines.append("")
        for record in detail.recent_items:
            lines.append(f"- {_format_timestamp(record.created_at)} {_clean_text(record.label)}")
        lines.append("")
    lines.append("## Conversations")
    lines.append("")
    lines.append(f"{len(shown)} of {total} conversations")
    lines.append("")
    if not shown:
        if search.strip():
            lines.append(f'No conversations match "{search.strip()}"')
        else:
            lines.append("No conversations available in this category")
    for record in shown:
        insights = record.insights
        sentiment = record.sentiment or "unknown"
        duration = insights.interaction_duration if insights else 0
        participants = insights.number_of_participants if insights else 0
        lines.append(
            f"- [{record.id}] {_clean_text(record.label)} ({sentiment}; "
            f"{_format_timestamp(record.created_at)}; {duration:g}m; {participants} participants)"
        )
        if record.keywords:
            lines.append(f"  - Keywords: {', '.join(_clean_text(k) for k in record.keywords)}")
    lines.append("")
    return "\n".join(lines)


def render_transcript(record: ConversationRecord) -> str:
    lines: List[str] = []
    lines.append(f"# Conversation {record.id}")
    lines.append("")
    lines.append(f"- Created: {_format_timestamp(record.created_at)}")
    lines.append(f"- Messages: {len(record.turns)}")
    lines.append(f"- Dialog span (min): {dialog_span_minutes(record)}")
    lines.append("")
    if record.parties:
        lines.append("## Participants")
        lines.append("")
        for index, party in enumerate(record.parties):
            contact = [c for c in (party.mailto, party.tel) if c]
            suffix = f" <{', '.join(contact)}>" if contact else ""
            role = f" ({party.role})" if party.role else ""
            lines.append(f"- {display_name(party, index)}{role}{suffix}")
        lines.append("")
    insights = record.insights
    if insights is not None:
        lines.append("## Analysis")
        lines.append("")
        if insights.sentiment:
            lines.append(f"- Sentiment: {insights.sentiment}")
        if insights.issues_raised:
            lines.append(f"- Issues raised: {_clean_text(insights.issues_raised)}")
        if insights.keywords:
            lines.append(f"- Keywords: {', '.join(insights.keywords)}")
        lines.append("")
    lines.append("## Transcript")
    lines.append("")
    for turn in record.turns:
        marker = "<" if transcript_side(turn, record.parties) == "left" else ">"
        lines.append(f"{marker} {_clean_text(turn.speaker)}: {_clean_text(turn.message)}")
    lines.append("")
    return "\n".join(lines)
