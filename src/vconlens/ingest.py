"""Accept new vCon documents into the record store."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

from .convex_client import ConvexClient
from .record_io import save_record
from .storage import ensure_dir, sanitize_filename

logger = logging.getLogger("vconlens")

SAVE_VCON_PATH = "functions/vcons:saveVcon"


class IngestError(Exception):
    """Raised when a payload cannot be accepted."""

    def __init__(self, message: str, status: int = 400) -> None:
        self.status = status
        super().__init__(message)


def validate_payload(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict) or not payload.get("uuid"):
        raise IngestError("Missing uuid")
    return payload


class DirectorySink:
    def __init__(self, directory: str) -> None:
        self.directory = directory

    def save(self, payload: Dict[str, Any]) -> str:
        ensure_dir(self.directory)
        path = os.path.join(
            self.directory, f"{sanitize_filename(str(payload['uuid']))}.json"
        )
        save_record(path, payload)
        return path


class ConvexSink:
    def __init__(self, client: ConvexClient) -> None:
        self.client = client

    def save(self, payload: Dict[str, Any]) -> str:
        self.client.mutation(SAVE_VCON_PATH, {"vcon": payload})
        return str(payload["uuid"])


def ingest_payload(payload: Any, sink) -> str:
    """Validate and persist one vCon; returns where it went."""
    vcon = validate_payload(payload)
    location = sink.save(vcon)
    logger.info("Ingested vCon %s -> %s", vcon["uuid"], location)
    return location
