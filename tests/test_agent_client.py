import json
import os
import tempfile

import httpx

from vconlens.agent_client import (
    CONTINUE_THREAD_PATH,
    CREATE_THREAD_PATH,
    LIST_MESSAGES_PATH,
    AgentClient,
    build_prompt,
    load_identity,
)
from vconlens.convex_client import ConvexClient


def _client(replies, calls):
    def handler(request):
        body = json.loads(request.content)
        calls.append(body)
        return httpx.Response(200, json={"status": "success", "value": replies[body["path"]]})

    return AgentClient(
        ConvexClient("https://demo.convex.cloud", transport=httpx.MockTransport(handler))
    )


def test_identity_is_created_once():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "chat_identity.yml")
        first = load_identity(path)
        second = load_identity(path)
    assert first.user_id == second.user_id
    assert first.thread_id is None


def test_ensure_thread_persists_thread_id():
    calls = []
    agent = _client({CREATE_THREAD_PATH: {"threadId": "t-1"}}, calls)
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "chat_identity.yml")
        identity = load_identity(path)
        assert agent.ensure_thread(identity, path) == "t-1"
        assert agent.ensure_thread(identity, path) == "t-1"
        assert load_identity(path).thread_id == "t-1"
    assert len(calls) == 1
    assert calls[0]["args"] == {"userId": identity.user_id}


def test_send_then_list_messages():
    calls = []
    page = {
        "page": [
            {"_creationTime": 2.0, "message": {"role": "assistant", "content": [{"type": "text", "text": "Hello!"}]}},
            {"_creationTime": 1.0, "message": {"role": "user", "content": "Hi"}},
            {"_creationTime": 3.0, "message": {"role": "tool", "content": []}},
        ],
        "isDone": False,
        "continueCursor": "next",
    }
    agent = _client({CONTINUE_THREAD_PATH: None, LIST_MESSAGES_PATH: page}, calls)

    assert agent.send_message("t-1", "Hi") is None
    result = agent.list_messages("t-1")

    assert [(m.role, m.text) for m in result.messages] == [("user", "Hi"), ("assistant", "Hello!")]
    assert result.next_cursor == "next"
    assert calls[0]["args"] == {"threadId": "t-1", "prompt": "Hi"}
    assert calls[1]["args"]["paginationOpts"] == {"numItems": 10, "cursor": None}


def test_prompt_context_is_opt_in(sample_records):
    assert build_prompt("Why?", sample_records) == "Why?"
    prompt = build_prompt("Why?", sample_records, include_context=True)
    assert prompt.startswith("Visible conversations: 5")
    assert "- Billing: 3 (positive 2, neutral 0, negative 1)" in prompt
    assert prompt.endswith("Why?")
