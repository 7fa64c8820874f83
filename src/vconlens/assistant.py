"""Pattern-matching assistant over the bubble-visible conversations."""

from __future__ import annotations

import random
import re
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .models import ConversationRecord

QUICK_QUESTIONS: List[Tuple[str, str]] = [
    ("Total items", "How many items are there in total?"),
    ("Largest category", "What's the largest category?"),
    ("Compare categories", "Compare all categories"),
    ("List categories", "List all categories"),
    ("Help", "What can you help me with?"),
]

HELP_TEXT = (
    "I can help you with:\n"
    "- Count items in categories\n"
    "- Compare category sizes\n"
    "- List items in specific categories\n"
    "- Find largest/smallest categories\n"
    "- Analyze your current selection\n\n"
    'Try asking: "How many items are in Billing?" or "Compare my categories"'
)

WELCOME_TEXT = (
    "Hi! I can help you analyze the items in your selected categories. "
    "Ask me anything about the data!"
)


def _counts(records: Sequence[ConversationRecord]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for record in records:
        if record.category is not None:
            counts[record.category] = counts.get(record.category, 0) + 1
    return counts


def _scope(selected: Set[str]) -> str:
    return "all" if not selected else str(len(selected))


def _fallbacks(total: int, selected: Set[str]) -> List[str]:
    names = ", ".join(sorted(selected)) if selected else "all categories"
    return [
        f"Based on your current selection of {total} items across "
        f"{_scope(selected)} categories, what specific aspect would you like to explore?",
        f"I can see you have {names} selected. "
        "What would you like to know about these categories?",
        f"Your current data includes {total} items. "
        "Try asking about counts, comparisons, or specific categories!",
    ]


def respond(
    question: str,
    bubble_visible: Sequence[ConversationRecord],
    selected_categories: Set[str],
    rng: Optional[random.Random] = None,
) -> str:
    text = question.lower()
    total = len(bubble_visible)
    counts = _counts(bubble_visible)
    by_size = sorted(counts.items(), key=lambda item: item[1], reverse=True)

    if "how many" in text or re.search(r"\bcount\b", text) or "total items" in text:
        if "total" in text:
            return (
                f"You currently have {total} items selected across "
                f"{_scope(selected_categories)} categories."
            )
        breakdown = ", ".join(f"{cat}: {n} items" for cat, n in counts.items())
        return f"Here's the breakdown: {breakdown}" if breakdown else "No items selected."

    if "categor" in text and ("list" in text or "which" in text or "what categor" in text):
        if not selected_categories:
            return f"All categories are currently selected: {', '.join(counts)}"
        return (
            f"You're currently viewing: {', '.join(sorted(selected_categories))}. "
            f"These categories contain {total} items total."
        )

    if "largest" in text or "biggest" in text:
        if not by_size:
            return "No categories selected."
        name, n = by_size[0]
        return f'The largest category is "{name}" with {n} items.'

    if "smallest" in text or "least" in text:
        if not by_size:
            return "No categories selected."
        name, n = sorted(counts.items(), key=lambda item: item[1])[0]
        return f'The smallest category is "{name}" with {n} items.'

    match = next(
        (cat for cat in sorted(selected_categories) if cat.lower() in text), None
    )
    if match is not None:
        labels = [r.label for r in bubble_visible if r.category == match]
        if not labels:
            return f"There are no items in {match} with the current filters."
        return f"Items in {match}: {', '.join(labels)}"

    if "compare" in text:
        if len(counts) < 2:
            return "You need at least 2 categories to make comparisons."
        comparison = " > ".join(f"{cat} ({n})" for cat, n in by_size)
        return f"Category comparison by size: {comparison}"

    if "help" in text or "what can" in text:
        return HELP_TEXT

    rng = rng or random.Random()
    return rng.choice(_fallbacks(total, selected_categories))
