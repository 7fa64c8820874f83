"""Remote chat assistant backed by the hosted agent functions."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .aggregation import category_counts
from .convex_client import ConvexClient
from .models import ConversationRecord

logger = logging.getLogger("vconlens")

CREATE_THREAD_PATH = "agents/agent:createThread"
CONTINUE_THREAD_PATH = "agents/agent:continueThread"
LIST_MESSAGES_PATH = "agents/agent:listThreadMessages"


@dataclass
class ChatIdentity:
    user_id: str
    thread_id: Optional[str] = None


@dataclass
class ChatMessage:
    role: str
    text: str
    created_at: Optional[float] = None


@dataclass
class MessagePage:
    messages: List[ChatMessage] = field(default_factory=list)
    next_cursor: Optional[str] = None


def load_identity(path: str) -> ChatIdentity:
    """Read the per-machine chat identity, creating a user id on first use."""
    data: Dict[str, Any] = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    identity = ChatIdentity(
        user_id=data.get("user_id") or str(uuid.uuid4()),
        thread_id=data.get("thread_id"),
    )
    if not data.get("user_id"):
        save_identity(path, identity)
    return identity


def save_identity(path: str, identity: ChatIdentity) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(
            {"user_id": identity.user_id, "thread_id": identity.thread_id},
            handle,
            sort_keys=False,
        )


def build_prompt(
    text: str,
    bubble_visible: Sequence[ConversationRecord],
    include_context: bool = False,
) -> str:
    if not include_context:
        return text
    lines = [f"Visible conversations: {len(bubble_visible)}"]
    for category, (count, tally) in category_counts(bubble_visible).items():
        lines.append(
            f"- {category}: {count} (positive {tally.positive}, "
            f"neutral {tally.neutral}, negative {tally.negative})"
        )
    lines.append("")
    lines.append(text)
    return "\n".join(lines)


def _parse_message(doc: Dict[str, Any]) -> Optional[ChatMessage]:
    message = doc.get("message") or {}
    role = message.get("role") or doc.get("role") or "assistant"
    content = message.get("content", doc.get("text"))
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") for part in content if isinstance(part, dict)
        )
    text = content or doc.get("text")
    if not text:
        return None
    return ChatMessage(role=str(role), text=str(text), created_at=doc.get("_creationTime"))


class AgentClient:
    def __init__(self, client: ConvexClient) -> None:
        self.client = client

    def create_thread(self, user_id: str) -> str:
        value = self.client.mutation(CREATE_THREAD_PATH, {"userId": user_id}) or {}
        thread_id = value.get("threadId")
        if not thread_id:
            raise ValueError("createThread returned no threadId.")
        logger.info("Created chat thread %s", thread_id)
        return str(thread_id)

    def ensure_thread(self, identity: ChatIdentity, identity_path: str) -> str:
        if not identity.thread_id:
            identity.thread_id = self.create_thread(identity.user_id)
            save_identity(identity_path, identity)
        return identity.thread_id

    def send_message(self, thread_id: str, prompt: str) -> None:
        # The reply is read back through list_messages.
        self.client.action(CONTINUE_THREAD_PATH, {"threadId": thread_id, "prompt": prompt})

    def list_messages(
        self, thread_id: str, cursor: Optional[str] = None, num_items: int = 10
    ) -> MessagePage:
        value = self.client.query(
            LIST_MESSAGES_PATH,
            {
                "threadId": thread_id,
                "paginationOpts": {"numItems": num_items, "cursor": cursor},
            },
        ) or {}
        messages = []
        for doc in value.get("page") or []:
            parsed = _parse_message(doc)
            if parsed is not None:
                messages.append(parsed)
        messages.sort(key=lambda m: m.created_at or 0)
        next_cursor = None if value.get("isDone", True) else value.get("continueCursor")
        return MessagePage(messages=messages, next_cursor=next_cursor)
