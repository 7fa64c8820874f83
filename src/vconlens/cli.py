"""CLI entry point."""

from __future__ import annotations

import argparse
import json
import logging
import os
import random
from datetime import date, datetime

from .assistant import respond
from .config import Config, load_config, save_config
from .convex_client import BackendError, ConvexClient
from .dashboard import Dashboard
from .ingest import ConvexSink, DirectorySink, IngestError, ingest_payload
from .layout import ForceLayout
from .logging_utils import setup_logging
from .record_io import record_to_dict
from .renderer import render_category_detail, render_summary_table, render_transcript
from .storage import build_report_basename, ensure_structure
from .store import ConvexRecordSource, DirectoryRecordSource, RecordSource, RecordStore


def _load_cfg(path: str) -> Config:
    if os.path.exists(path):
        return load_config(path)
    return Config(base_dir="")


def build_source(config: Config, directory: str | None = None, convex_url: str | None = None) -> RecordSource:
    url = convex_url or (config.source.convex_url if config.source.kind == "convex" else None)
    if url and not directory:
        return ConvexRecordSource(ConvexClient(url, timeout_s=config.source.timeout_s))
    if not directory:
        directory = config.source.directory or ensure_structure(config.base_dir)["records"]
    return DirectoryRecordSource(directory)


def _add_source_args(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--config", default="vconlens_config.yml", help="Config.")
    cmd.add_argument("--records", help="Directory of vCon JSON files.")
    cmd.add_argument("--convex-url", help="Convex deployment URL.")


def _add_filter_args(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--search", default="", help="Keyword/transcript search.")
    cmd.add_argument("--start", type=date.fromisoformat, help="Start date (YYYY-MM-DD).")
    cmd.add_argument("--end", type=date.fromisoformat, help="End date (YYYY-MM-DD).")
    cmd.add_argument(
        "--sentiment",
        action="append",
        choices=["positive", "neutral", "negative"],
        help="Restrict to a sentiment (repeatable).",
    )
    cmd.add_argument(
        "--category", action="append", help="Select a category (repeatable)."
    )


def _open_dashboard(args: argparse.Namespace) -> tuple[Config, Dashboard]:
    cfg = _load_cfg(args.config)
    source = build_source(cfg, directory=args.records, convex_url=args.convex_url)
    store = RecordStore(source, page_size=cfg.source.page_size)
    store.load_all()
    for notice in store.notices:
        print(notice)
    layout = ForceLayout(cfg.window_width, cfg.window_height, cfg.layout.to_params())
    dashboard = Dashboard(store, layout=layout)
    dashboard.refresh()

    filters = dashboard.filters
    if getattr(args, "search", None):
        filters.set_content_search(args.search)
    if getattr(args, "start", None) or getattr(args, "end", None):
        filters.set_date_range(args.start, args.end)
    if getattr(args, "sentiment", None):
        filters.set_sentiment_filter(args.sentiment)
    if getattr(args, "category", None):
        filters.state.selected_categories = set(args.category)
    dashboard.refresh()
    return cfg, dashboard


def main() -> int:
    parser = argparse.ArgumentParser(prog="vconlens")
    parser.add_argument(
        "--verbose", action="store_true", help="Debug logging to stderr and the log file."
    )
    sub = parser.add_subparsers(dest="command")

    summary_cmd = sub.add_parser("summary", help="Category counts and sentiment.")
    _add_source_args(summary_cmd)
    _add_filter_args(summary_cmd)

    detail_cmd = sub.add_parser("detail", help="Statistics for one category.")
    detail_cmd.add_argument("name", help="Category label.")
    detail_cmd.add_argument("--find", default="", help="Filter the conversation list.")
    detail_cmd.add_argument("--save", action="store_true", help="Write a Markdown report.")
    _add_source_args(detail_cmd)
    _add_filter_args(detail_cmd)

    show_cmd = sub.add_parser("show", help="Print one conversation transcript.")
    show_cmd.add_argument("record_id", help="vCon uuid.")
    show_cmd.add_argument("--json", action="store_true", help="Print the parsed vCon as JSON.")
    _add_source_args(show_cmd)

    ask_cmd = sub.add_parser("ask", help="Ask the assistant about the selection.")
    ask_cmd.add_argument("question", help="Question text.")
    ask_cmd.add_argument("--seed", type=int, help="Seed for fallback answers.")
    _add_source_args(ask_cmd)
    _add_filter_args(ask_cmd)

    ingest_cmd = sub.add_parser("ingest", help="Store a vCon JSON document.")
    ingest_cmd.add_argument("path", help="Path to a vCon JSON file.")
    _add_source_args(ingest_cmd)

    config_cmd = sub.add_parser("config", help="Write a default config file.")
    config_cmd.add_argument("--out", default="vconlens_config.yml", help="Output path.")
    config_cmd.add_argument("--base-dir", default="", help="Base output directory.")

    gui_cmd = sub.add_parser("gui")
    gui_cmd.add_argument("--config", default="vconlens_config.yml", help="Config.")

    args = parser.parse_args()

    if args.verbose:
        cfg = _load_cfg(getattr(args, "config", "vconlens_config.yml"))
        setup_logging(
            ensure_structure(cfg.base_dir)["logs"], level=logging.DEBUG, console=True
        )

    if args.command in ("summary", "detail", "show", "ask"):
        try:
            cfg, dashboard = _open_dashboard(args)
        except ValueError as exc:
            print(f"Error: {exc}")
            return 1
        if dashboard.store.notices:
            return 1
        views = dashboard.views

        if args.command == "summary":
            print(f"Records: {len(dashboard.records)} loaded, {len(views.working_set)} after filters")
            print(render_summary_table(views.summaries))
            return 0

        if args.command == "detail":
            dashboard.filters.open_detail(args.name)
            views = dashboard.refresh()
            report = render_category_detail(views.detail, search=args.find)
            if args.save:
                paths = ensure_structure(cfg.base_dir)
                out = os.path.join(
                    paths["reports"], f"{build_report_basename(args.name, datetime.now())}.md"
                )
                with open(out, "w", encoding="utf-8") as handle:
                    handle.write(report)
                print(f"Report saved: {out}")
            else:
                print(report)
            return 0

        if args.command == "show":
            record = next((r for r in dashboard.records if r.id == args.record_id), None)
            if record is None:
                print(f"Conversation not found: {args.record_id}")
                return 1
            if args.json:
                print(json.dumps(record_to_dict(record), indent=2))
            else:
                print(render_transcript(record))
            return 0

        rng = random.Random(args.seed) if args.seed is not None else None
        print(
            respond(
                args.question,
                views.bubble_visible,
                dashboard.filters.state.selected_categories,
                rng=rng,
            )
        )
        return 0

    if args.command == "ingest":
        cfg = _load_cfg(args.config)
        with open(args.path, "r", encoding="utf-8") as handle:
            try:
                payload = json.load(handle)
            except json.JSONDecodeError as exc:
                print(f"Invalid JSON: {exc}")
                return 1
        url = args.convex_url or (cfg.source.convex_url if cfg.source.kind == "convex" else None)
        if url and not args.records:
            sink = ConvexSink(ConvexClient(url, timeout_s=cfg.source.timeout_s))
        else:
            sink = DirectorySink(
                args.records or cfg.source.directory or ensure_structure(cfg.base_dir)["records"]
            )
        try:
            location = ingest_payload(payload, sink)
        except IngestError as exc:
            print(f"Rejected ({exc.status}): {exc}")
            return 1
        except BackendError as exc:
            print(f"Ingest failed: {exc}")
            return 1
        print(f"Stored {location}")
        return 0

    if args.command == "config":
        save_config(args.out, Config(base_dir=args.base_dir))
        print(f"Wrote {args.out}")
        return 0

    if args.command == "gui":
        from .gui import launch_gui

        launch_gui(args.config)
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
