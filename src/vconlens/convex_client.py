"""Minimal client for the Convex HTTP function API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("vconlens")


class BackendError(Exception):
    """Base exception for hosted backend calls."""


class TransportError(BackendError):
    """Raised when the backend cannot be reached or answers with an HTTP error."""


class ConvexError(BackendError):
    """Raised when a Convex function reports an error."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"[{path}] {message}")


class ConvexClient:
    """Calls queries, mutations and actions on a Convex deployment.

    ``transport`` exists for tests (``httpx.MockTransport``).
    """

    def __init__(
        self,
        url: str,
        timeout_s: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not url:
            raise ValueError("Convex deployment URL is required.")
        self.url = url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.url, timeout=timeout_s, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ConvexClient":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    def _call(self, kind: str, path: str, args: Dict[str, Any]) -> Any:
        payload = {"path": path, "args": args, "format": "json"}
        try:
            response = self._client.post(f"/api/{kind}", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Convex %s %s returned %d: %s",
                kind,
                path,
                exc.response.status_code,
                exc.response.text,
            )
            raise TransportError(
                f"Convex {kind} {path} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Convex %s %s request failed: %s", kind, path, exc)
            raise TransportError(f"Convex {kind} {path} request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Convex {kind} {path} returned invalid JSON") from exc
        if data.get("status") != "success":
            raise ConvexError(path, str(data.get("errorMessage", "unknown error")))
        return data.get("value")

    def query(self, path: str, args: Optional[Dict[str, Any]] = None) -> Any:
        return self._call("query", path, args or {})

    def mutation(self, path: str, args: Optional[Dict[str, Any]] = None) -> Any:
        return self._call("mutation", path, args or {})

    def action(self, path: str, args: Optional[Dict[str, Any]] = None) -> Any:
        return self._call("action", path, args or {})
