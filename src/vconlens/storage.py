"""Storage and naming utilities."""

from __future__ import annotations

import os
import re
from datetime import datetime


def timestamp_slug(dt: datetime | None = None) -> str:
    now = dt or datetime.now()
    return now.strftime("%Y-%m-%d")


def sanitize_filename(name: str) -> str:
    value = (name or "").strip()
    if not value:
        return "General"
    value = value.replace(" ", "-")
    return re.sub(r"[^A-Za-z0-9._-]", "", value) or "General"


def build_report_basename(category: str, dt: datetime | None = None) -> str:
    return f"{timestamp_slug(dt)}--{sanitize_filename(category)}"


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def ensure_structure(base_dir: str) -> dict:
    root = base_dir or os.getcwd()
    paths = {
        "root": root,
        "records": os.path.join(root, "Records"),
        "reports": os.path.join(root, "Reports"),
        "logs": os.path.join(root, "Logs"),
    }
    for path in paths.values():
        ensure_dir(path)
    return paths
