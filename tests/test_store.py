import json
import os
import tempfile

import httpx
import pytest

from vconlens.convex_client import ConvexClient, ConvexError, TransportError
from vconlens.store import (
    VCON_LIST_PATH,
    ConvexRecordSource,
    DirectoryRecordSource,
    Page,
    RecordSource,
    RecordStore,
)


def _vcon(uuid, category="Billing", created="2024-03-01T10:00:00Z"):
    return {
        "uuid": uuid,
        "created_at": created,
        "parties": [{"name": "Ava", "meta": {"role": "agent"}}],
        "analysis": [
            {"type": "transcript", "body": [{"speaker": "agent", "message": "hi"}]},
            {"type": "summary", "body": {"category": category, "sentiment": "positive"}},
        ],
    }


class ListSource(RecordSource):
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def fetch_page(self, cursor, num_items):
        self.calls.append((cursor, num_items))
        return self.pages[int(cursor or 0)]


class BrokenSource(RecordSource):
    def fetch_page(self, cursor, num_items):
        raise TransportError("Convex query failed with HTTP 503")


def test_store_pages_until_exhausted(make_record):
    source = ListSource([
        Page([make_record("a"), make_record("b")], next_cursor="1"),
        Page([make_record("c")], next_cursor=None),
    ])
    store = RecordStore(source, page_size=2)
    assert store.status == "loading_first_page"

    assert store.load_more() == 2
    assert store.status == "can_load_more"
    assert store.load_more() == 1
    assert store.status == "exhausted"
    assert store.load_more() == 0
    assert [r.id for r in store.records] == ["a", "b", "c"]
    assert source.calls == [(None, 2), ("1", 2)]


def test_store_dedupes_by_id(make_record):
    source = ListSource([
        Page([make_record("a"), make_record("b")], next_cursor="1"),
        Page([make_record("b"), make_record("c")], next_cursor=None),
    ])
    store = RecordStore(source)
    assert store.load_all() == 3
    assert [r.id for r in store.records] == ["a", "b", "c"]


def test_store_keeps_records_on_failure(make_record):
    store = RecordStore(ListSource([Page([make_record("a")], next_cursor="1")]))
    store.load_more()
    store.source = BrokenSource()

    assert store.load_more() == 0
    assert [r.id for r in store.records] == ["a"]
    assert store.notices == ["Could not load conversations: Convex query failed with HTTP 503"]
    assert not store.exhausted


def test_load_all_stops_on_failure():
    store = RecordStore(BrokenSource())
    assert store.load_all() == 0
    assert len(store.notices) == 1


def test_directory_source_newest_first():
    with tempfile.TemporaryDirectory() as tmp:
        for i, day in enumerate(("01", "03", "02")):
            with open(os.path.join(tmp, f"r{i}.json"), "w", encoding="utf-8") as handle:
                json.dump(_vcon(f"id-{day}", created=f"2024-03-{day}T00:00:00Z"), handle)
        store = RecordStore(DirectoryRecordSource(tmp), page_size=2)
        store.load_all()

    assert [r.id for r in store.records] == ["id-03", "id-02", "id-01"]
    assert store.pages_loaded == 2


def test_directory_source_missing_directory_is_empty():
    store = RecordStore(DirectoryRecordSource("/nonexistent/vconlens"))
    store.load_all()
    assert store.records == []
    assert store.exhausted


def test_convex_source_paginates():
    seen = []

    def handler(request):
        body = json.loads(request.content)
        seen.append(body)
        cursor = body["args"]["paginationOpts"]["cursor"]
        if cursor is None:
            value = {"page": [_vcon("a"), {"nope": 1}], "isDone": False, "continueCursor": "c1"}
        else:
            value = {"page": [_vcon("b", "Support")], "isDone": True, "continueCursor": "c2"}
        return httpx.Response(200, json={"status": "success", "value": value})

    client = ConvexClient("https://demo.convex.cloud", transport=httpx.MockTransport(handler))
    store = RecordStore(ConvexRecordSource(client), page_size=5)
    store.load_all()

    assert [r.id for r in store.records] == ["a", "b"]
    assert store.records[1].category == "Support"
    assert seen[0]["path"] == VCON_LIST_PATH
    assert seen[0]["format"] == "json"
    assert seen[0]["args"]["paginationOpts"] == {"numItems": 5, "cursor": None}
    assert seen[1]["args"]["paginationOpts"]["cursor"] == "c1"


def test_convex_error_status_raises():
    def handler(request):
        return httpx.Response(200, json={"status": "error", "errorMessage": "boom"})

    client = ConvexClient("https://demo.convex.cloud", transport=httpx.MockTransport(handler))
    with pytest.raises(ConvexError) as excinfo:
        client.query("functions/vcons:getVconList")
    assert "boom" in str(excinfo.value)


def test_convex_http_failure_becomes_notice():
    def handler(request):
        return httpx.Response(500, text="down")

    client = ConvexClient("https://demo.convex.cloud", transport=httpx.MockTransport(handler))
    store = RecordStore(ConvexRecordSource(client))
    assert store.load_more() == 0
    assert "HTTP 500" in store.notices[0]


def test_convex_client_requires_url():
    with pytest.raises(ValueError):
        ConvexClient("")
