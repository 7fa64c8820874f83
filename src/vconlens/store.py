"""Paginated record feed."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Set

from .convex_client import BackendError, ConvexClient
from .models import ConversationRecord
from .record_io import load_records, parse_record

logger = logging.getLogger("vconlens")

VCON_LIST_PATH = "functions/vcons:getVconList"


@dataclass
class Page:
    records: List[ConversationRecord] = field(default_factory=list)
    next_cursor: Optional[str] = None


class RecordSource:
    def fetch_page(self, cursor: Optional[str], num_items: int) -> Page:
        raise NotImplementedError


class DirectoryRecordSource(RecordSource):
    """Pages over vCon JSON files in a directory, newest first."""

    def __init__(self, directory: str) -> None:
        self.directory = directory
        self._records: Optional[List[ConversationRecord]] = None

    def _load(self) -> List[ConversationRecord]:
        if self._records is None:
            oldest = datetime.min.replace(tzinfo=timezone.utc)
            if os.path.exists(self.directory):
                records = load_records(self.directory)
            else:
                logger.warning("Record directory not found: %s", self.directory)
                records = []
            self._records = sorted(
                records, key=lambda r: r.created_at or oldest, reverse=True
            )
        return self._records

    def fetch_page(self, cursor: Optional[str], num_items: int) -> Page:
        records = self._load()
        offset = int(cursor) if cursor else 0
        end = offset + num_items
        next_cursor = str(end) if end < len(records) else None
        return Page(records=records[offset:end], next_cursor=next_cursor)


class ConvexRecordSource(RecordSource):
    def __init__(self, client: ConvexClient, path: str = VCON_LIST_PATH) -> None:
        self.client = client
        self.path = path

    def fetch_page(self, cursor: Optional[str], num_items: int) -> Page:
        value = self.client.query(
            self.path,
            {"paginationOpts": {"numItems": num_items, "cursor": cursor}},
        ) or {}
        records = []
        for payload in value.get("page") or []:
            try:
                records.append(parse_record(payload))
            except ValueError as exc:
                logger.warning("Skipping record from %s: %s", self.path, exc)
        next_cursor = None if value.get("isDone", True) else value.get("continueCursor")
        return Page(records=records, next_cursor=next_cursor)


class RecordStore:
    """Accumulates pages in arrival order, de-duplicated by record id.

    Fetch failures never discard what is already loaded; they are kept as
    notices for the UI.
    """

    def __init__(self, source: RecordSource, page_size: int = 5) -> None:
        self.source = source
        self.page_size = page_size
        self.records: List[ConversationRecord] = []
        self.notices: List[str] = []
        self.pages_loaded = 0
        self.exhausted = False
        self._cursor: Optional[str] = None
        self._ids: Set[str] = set()

    @property
    def status(self) -> str:
        if self.exhausted:
            return "exhausted"
        if self.pages_loaded == 0:
            return "loading_first_page"
        return "can_load_more"

    def fetch_next(self, num_items: Optional[int] = None) -> Page:
        return self.source.fetch_page(self._cursor, num_items or self.page_size)

    def apply_page(self, page: Page) -> int:
        added = 0
        for record in page.records:
            if record.id in self._ids:
                continue
            self._ids.add(record.id)
            self.records.append(record)
            added += 1
        self.pages_loaded += 1
        self._cursor = page.next_cursor
        self.exhausted = page.next_cursor is None
        logger.info(
            "Loaded page %d: %d new records (%d total)",
            self.pages_loaded,
            added,
            len(self.records),
        )
        return added

    def record_failure(self, exc: Exception) -> None:
        message = f"Could not load conversations: {exc}"
        logger.warning(message)
        self.notices.append(message)

    def load_more(self, num_items: Optional[int] = None) -> int:
        if self.exhausted:
            return 0
        try:
            page = self.fetch_next(num_items)
        except (BackendError, OSError, ValueError) as exc:
            self.record_failure(exc)
            return 0
        return self.apply_page(page)

    def load_all(self, max_pages: int = 1000) -> int:
        total = 0
        for _ in range(max_pages):
            if self.exhausted:
                break
            before = len(self.notices)
            total += self.load_more()
            if len(self.notices) > before:
                break
        return total
