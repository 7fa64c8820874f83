"""vCon record parsing and persistence."""

from __future__ import annotations

import json
import logging
import math
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .models import (
    AnalysisBlock,
    ConversationRecord,
    DialogEntry,
    InsightsBlock,
    Party,
    TranscriptBlock,
    TranscriptTurn,
)

logger = logging.getLogger("vconlens")

TRANSCRIPT_TYPES = ("transcript", "transcription", "conversation", "dialog_text")
RECORD_SUFFIXES = (".json", ".jsonl")


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug("Unparseable timestamp: %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _number(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _decode_body(entry: Dict[str, Any]) -> Any:
    body = entry.get("body")
    if isinstance(body, str) and entry.get("encoding", "json") == "json":
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            return body
    return body


def _parse_sentiment(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("type")
    if not value:
        return None
    return str(value).strip().lower()


def parse_analysis(entry: Dict[str, Any]) -> Optional[AnalysisBlock]:
    """Classify one raw analysis entry as a transcript or insights block."""
    kind = str(entry.get("type", "")).lower()
    vendor = str(entry.get("vendor", ""))
    body = _decode_body(entry)

    if kind in TRANSCRIPT_TYPES or isinstance(body, list):
        turns = []
        for turn in body or []:
            if not isinstance(turn, dict):
                continue
            turns.append(
                TranscriptTurn(
                    speaker=str(turn.get("speaker", "")),
                    message=str(turn.get("message", "")),
                )
            )
        return TranscriptBlock(turns=turns, vendor=vendor)

    if isinstance(body, dict):
        category = body.get("category")
        return InsightsBlock(
            category=str(category) if category is not None else None,
            sentiment=_parse_sentiment(body.get("sentiment")),
            keywords=[str(k) for k in body.get("keywords") or []],
            issues_raised=str(body.get("issues_raised") or ""),
            interaction_duration=_number(body.get("interaction_duration")),
            number_of_participants=int(_number(body.get("number_of_participants"))),
            vendor=vendor,
        )

    logger.debug("Skipping analysis entry of type %r", kind)
    return None


def parse_party(data: Dict[str, Any]) -> Party:
    meta = data.get("meta") or {}
    return Party(
        name=str(data.get("name", "")),
        role=str(meta.get("role", data.get("role", ""))),
        mailto=data.get("mailto") or data.get("email"),
        tel=data.get("tel"),
    )


def parse_dialog(data: Dict[str, Any]) -> DialogEntry:
    meta = data.get("meta") or {}
    return DialogEntry(
        type=str(data.get("type", "")),
        start=data.get("start"),
        duration=_number(data.get("duration")),
        parties=[int(p) for p in data.get("parties") or [] if isinstance(p, int)],
        direction=meta.get("direction"),
        disposition=meta.get("disposition"),
        mimetype=data.get("mimetype"),
        filename=data.get("filename"),
        url=data.get("url"),
    )


def parse_record(data: Dict[str, Any]) -> ConversationRecord:
    record_id = data.get("uuid") or data.get("_id") or data.get("id")
    if not record_id:
        raise ValueError("vCon record has no uuid.")
    analysis: List[AnalysisBlock] = []
    for entry in data.get("analysis") or []:
        if isinstance(entry, dict):
            block = parse_analysis(entry)
            if block is not None:
                analysis.append(block)
    return ConversationRecord(
        id=str(record_id),
        created_at=parse_timestamp(data.get("created_at")),
        updated_at=parse_timestamp(data.get("updated_at")),
        parties=[parse_party(p) for p in data.get("parties") or []],
        dialog=[parse_dialog(d) for d in data.get("dialog") or []],
        analysis=analysis,
    )


def _analysis_to_dict(block: AnalysisBlock) -> Dict[str, Any]:
    if isinstance(block, TranscriptBlock):
        body: Any = [{"speaker": t.speaker, "message": t.message} for t in block.turns]
    else:
        body = {
            "category": block.category,
            "sentiment": {"type": block.sentiment} if block.sentiment else None,
            "keywords": list(block.keywords),
            "issues_raised": block.issues_raised,
            "interaction_duration": block.interaction_duration,
            "number_of_participants": block.number_of_participants,
        }
    return {"type": block.kind, "vendor": block.vendor, "encoding": "json", "body": body}


def record_to_dict(record: ConversationRecord) -> Dict[str, Any]:
    return {
        "uuid": record.id,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
        "parties": [
            {
                "name": p.name,
                "meta": {"role": p.role},
                "mailto": p.mailto,
                "tel": p.tel,
            }
            for p in record.parties
        ],
        "dialog": [
            {
                "type": d.type,
                "start": d.start,
                "duration": d.duration,
                "parties": list(d.parties),
                "meta": {"direction": d.direction, "disposition": d.disposition},
                "mimetype": d.mimetype,
                "filename": d.filename,
                "url": d.url,
            }
            for d in record.dialog
        ],
        "analysis": [_analysis_to_dict(block) for block in record.analysis],
    }


def _read_payloads(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as handle:
        try:
            if path.endswith(".jsonl"):
                payloads = [json.loads(line) for line in handle if line.strip()]
            else:
                data = json.load(handle)
                payloads = data if isinstance(data, list) else [data]
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    return [p for p in payloads if isinstance(p, dict)]


def list_record_files(directory: str) -> List[str]:
    if not os.path.isdir(directory):
        return []
    names = sorted(n for n in os.listdir(directory) if n.endswith(RECORD_SUFFIXES))
    return [os.path.join(directory, n) for n in names]


def load_records(path: str) -> List[ConversationRecord]:
    paths: Iterable[str] = list_record_files(path) if os.path.isdir(path) else [path]
    records: List[ConversationRecord] = []
    for file_path in paths:
        for payload in _read_payloads(file_path):
            records.append(parse_record(payload))
    return records


def save_record(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
