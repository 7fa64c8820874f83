"""Tkinter dashboard: bubbles, filters, detail view and chat."""

from __future__ import annotations

import logging
import os
import queue
import random
import threading
from datetime import date, datetime

import yaml

from .agent_client import AgentClient, build_prompt, load_identity
from .assistant import QUICK_QUESTIONS, WELCOME_TEXT, respond
from .cli import build_source
from .config import Config, load_config
from .convex_client import BackendError, ConvexClient
from .dashboard import Dashboard
from .layout import ForceLayout
from .logging_utils import setup_logging
from .models import SENTIMENTS
from .renderer import filter_conversations, render_category_detail, render_transcript
from .storage import ensure_structure
from .store import RecordStore

PALETTE = (
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
    "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
)
MOOD_OUTLINE = {
    "positive": "#10b981",
    "negative": "#ef4444",
    "mixed": "#f59e0b",
    "none": "#c7d2fe",
}


def _parse_date(text: str) -> date | None:
    text = text.strip()
    return date.fromisoformat(text) if text else None


def launch_gui(config_path: str = "vconlens_config.yml") -> None:
    import tkinter as tk
    from tkinter import ttk

    from ttkbootstrap.tooltip import ToolTip

    config_error = None
    if os.path.exists(config_path):
        try:
            config = load_config(config_path)
        except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
            config_error = exc
            config = Config(base_dir="")
    else:
        config = Config(base_dir="")

    base_paths = ensure_structure(config.base_dir)
    debug_enabled = bool(config.context.get("debug_logging", False))
    logger, log_path = setup_logging(
        log_dir=base_paths["logs"],
        level=logging.DEBUG if debug_enabled else logging.INFO,
    )

    def _thread_excepthook(args) -> None:
        logger.exception(
            "Thread exception",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    threading.excepthook = _thread_excepthook
    if config_error is not None:
        logger.warning("Ignoring unreadable config %s: %s", config_path, config_error)

    root = tk.Tk()
    root.title("vconlens")
    root.geometry(f"{config.window_width}x{config.window_height}")
    root.configure(bg="#0b0f14")

    style = ttk.Style(root)
    try:
        style.theme_use("clam")
    except tk.TclError:
        pass
    style.configure("TFrame", background="#0b0f14")
    style.configure("TLabel", background="#0b0f14", foreground="#d8e1ff")
    style.configure("TCheckbutton", background="#0b0f14", foreground="#9ad1ff")
    style.configure("TButton", background="#132033", foreground="#e6f1ff")

    source = build_source(config)
    store = RecordStore(source, page_size=config.source.page_size)
    layout = ForceLayout(
        config.window_width, config.window_height, config.layout.to_params()
    )
    dashboard = Dashboard(store, layout=layout)
    inbox: queue.Queue = queue.Queue()
    state = {"loading": False, "frame_pending": False, "colors": {}, "category_vars": []}
    rng = (
        random.Random(config.assistant.fallback_seed)
        if config.assistant.fallback_seed is not None
        else random.Random()
    )
    remote = None
    identity_path = os.path.join(base_paths["root"], config.assistant.identity_file)
    if config.assistant.mode == "remote" and config.source.convex_url:
        remote = AgentClient(
            ConvexClient(config.source.convex_url, timeout_s=config.source.timeout_s)
        )

    status_var = tk.StringVar(value="Loading conversations...")
    search_var = tk.StringVar()
    start_var = tk.StringVar()
    end_var = tk.StringVar()
    sentiment_vars = {s: tk.BooleanVar(value=False) for s in SENTIMENTS}
    chat_var = tk.StringVar()

    def _set_status(text: str) -> None:
        status_var.set(text)
        logger.info(text)

    # Layout ------------------------------------------------------------------
    sidebar = ttk.Frame(root, padding=8)
    sidebar.pack(side="left", fill="y")
    chat_frame = ttk.Frame(root, padding=8)
    chat_frame.pack(side="right", fill="y")
    canvas = tk.Canvas(root, bg="#1e1b4b", highlightthickness=0)
    canvas.pack(side="left", fill="both", expand=True)
    ttk.Label(root, textvariable=status_var).pack(side="bottom", fill="x")

    ttk.Label(sidebar, text="Search in conversations").pack(anchor="w")
    search_entry = ttk.Entry(sidebar, textvariable=search_var, width=28)
    search_entry.pack(anchor="w", fill="x")
    ToolTip(search_entry, text="Matches keywords and transcript text, any case.")
    ttk.Label(sidebar, text="From / to (YYYY-MM-DD)").pack(anchor="w", pady=(8, 0))
    dates = ttk.Frame(sidebar)
    dates.pack(anchor="w", fill="x")
    start_entry = ttk.Entry(dates, textvariable=start_var, width=12)
    start_entry.pack(side="left")
    end_entry = ttk.Entry(dates, textvariable=end_var, width=12)
    end_entry.pack(side="left", padx=4)
    ToolTip(start_entry, text="First day included. Leave blank for no lower bound.")
    ToolTip(end_entry, text="Last day included. Leave blank for no upper bound.")
    ttk.Label(sidebar, text="Sentiment").pack(anchor="w", pady=(8, 0))
    for sentiment in SENTIMENTS:
        ttk.Checkbutton(
            sidebar,
            text=sentiment,
            variable=sentiment_vars[sentiment],
            command=lambda s=sentiment: _toggle_sentiment(s),
        ).pack(anchor="w")
    buttons = ttk.Frame(sidebar)
    buttons.pack(anchor="w", fill="x", pady=8)
    ttk.Button(buttons, text="Select all", command=lambda: _select_all()).pack(side="left")
    reset_button = ttk.Button(buttons, text="Reset", command=lambda: _reset())
    reset_button.pack(side="left", padx=4)
    ToolTip(reset_button, text="Clears every filter. Bubbles return when you pick categories.")
    ttk.Label(sidebar, text="Categories").pack(anchor="w")
    category_box = ttk.Frame(sidebar)
    category_box.pack(anchor="w", fill="both", expand=True)
    load_button = ttk.Button(sidebar, text="Load more", command=lambda: _load_more())
    load_button.pack(anchor="w", fill="x", pady=(8, 0))
    ToolTip(load_button, text="Fetch the next page of conversations.")

    chat_log = tk.Text(chat_frame, width=42, height=30, wrap="word", state="disabled")
    chat_log.pack(fill="both", expand=True)
    quick = ttk.Frame(chat_frame)
    quick.pack(fill="x", pady=4)
    for label, question in QUICK_QUESTIONS:
        ttk.Button(quick, text=label, command=lambda q=question: _ask(q)).pack(fill="x")
    chat_entry = ttk.Entry(chat_frame, textvariable=chat_var)
    chat_entry.pack(fill="x")
    chat_entry.bind("<Return>", lambda _e: _ask(chat_var.get()))

    # Derived views ------------------------------------------------------------
    def _color(category: str) -> str:
        colors = state["colors"]
        if category not in colors:
            colors[category] = PALETTE[len(colors) % len(PALETTE)]
        return colors[category]

    def _rebuild_categories() -> None:
        for child in category_box.winfo_children():
            child.destroy()
        state["category_vars"] = []
        for summary in dashboard.views.summaries:
            var = tk.BooleanVar(value=summary.is_selected)
            state["category_vars"].append(var)
            ttk.Checkbutton(
                category_box,
                text=f"{summary.category} ({summary.count})",
                variable=var,
                command=lambda c=summary.category: _toggle_category(c),
            ).pack(anchor="w")

    def _refresh() -> None:
        views = dashboard.refresh()
        _rebuild_categories()
        notice = store.notices[-1] if store.notices else ""
        _set_status(
            f"{len(store.records)} loaded ({store.status}), "
            f"{len(views.working_set)} filtered, {len(views.bubble_visible)} shown"
            + (f" | {notice}" if notice else "")
        )
        load_button.configure(state="disabled" if store.exhausted else "normal")
        _draw()
        _schedule_frame()

    def _draw() -> None:
        canvas.delete("bubble")
        for node in layout.nodes:
            r = node.radius
            canvas.create_oval(
                node.x - r,
                node.y - r,
                node.x + r,
                node.y + r,
                fill=_color(node.category),
                outline=MOOD_OUTLINE.get(node.mood, MOOD_OUTLINE["none"]),
                width=4,
                tags="bubble",
            )
            canvas.create_text(
                node.x, node.y - 7, text=node.category, fill="white",
                font=("Segoe UI", 10, "bold"), tags="bubble",
            )
            canvas.create_text(
                node.x, node.y + 9, text=f"{node.count} items", fill="#e5e7eb",
                font=("Segoe UI", 9), tags="bubble",
            )

    def _frame() -> None:
        state["frame_pending"] = False
        layout.tick()
        _draw()
        _schedule_frame()

    def _schedule_frame() -> None:
        if state["frame_pending"] or not layout.running:
            return
        state["frame_pending"] = True
        root.after(config.layout.frame_interval_ms, _frame)

    # Filter transitions -------------------------------------------------------
    def _toggle_category(category: str) -> None:
        dashboard.filters.toggle_category(category)
        _refresh()

    def _select_all() -> None:
        dashboard.select_all()
        _refresh()

    def _reset() -> None:
        dashboard.filters.reset_filters()
        search_var.set("")
        start_var.set("")
        end_var.set("")
        for var in sentiment_vars.values():
            var.set(False)
        _refresh()

    def _apply_search(*_args) -> None:
        dashboard.filters.set_content_search(search_var.get())
        _refresh()

    def _apply_dates(*_args) -> None:
        try:
            start = _parse_date(start_var.get())
            end = _parse_date(end_var.get())
        except ValueError:
            return
        dashboard.filters.set_date_range(start, end)
        _refresh()

    def _toggle_sentiment(sentiment: str) -> None:
        dashboard.filters.toggle_sentiment(sentiment)
        _refresh()

    search_var.trace_add("write", _apply_search)
    start_var.trace_add("write", _apply_dates)
    end_var.trace_add("write", _apply_dates)

    # Canvas gestures ------------------------------------------------------------
    def _on_press(event) -> None:
        if layout.pointer_down(event.x, event.y):
            _schedule_frame()

    def _on_drag(event) -> None:
        layout.pointer_move(event.x, event.y)

    def _on_release(event) -> None:
        category = dashboard.pointer_up(event.x, event.y)
        if category is not None:
            _open_detail(category)

    def _on_resize(event) -> None:
        layout.resize(event.width, event.height)
        _schedule_frame()

    canvas.bind("<ButtonPress-1>", _on_press)
    canvas.bind("<B1-Motion>", _on_drag)
    canvas.bind("<ButtonRelease-1>", _on_release)
    canvas.bind("<Configure>", _on_resize)

    # Detail and transcript windows ---------------------------------------------
    def _open_transcript(record) -> None:
        win = tk.Toplevel(root)
        win.title(f"Conversation {record.id[:8]}")
        text = tk.Text(win, width=90, height=36, wrap="word")
        text.pack(fill="both", expand=True)
        text.tag_configure("left", justify="left", foreground="#1f2937")
        text.tag_configure("right", justify="right", foreground="#1d4ed8")
        for line in render_transcript(record).splitlines():
            tag = "right" if line.startswith("> ") else "left"
            text.insert("end", line + "\n", tag)
        text.configure(state="disabled")

    def _open_detail(category: str) -> None:
        win = tk.Toplevel(root)
        win.title(category)
        find_var = tk.StringVar()
        ttk.Entry(win, textvariable=find_var).pack(fill="x")
        body = tk.Text(win, width=90, height=24, wrap="word")
        body.pack(fill="both", expand=True)
        listing = tk.Listbox(win, height=8)
        listing.pack(fill="x")
        shown: list = []

        def _render(*_args) -> None:
            detail = dashboard.views.detail
            if detail is None:
                return
            body.configure(state="normal")
            body.delete("1.0", "end")
            body.insert("end", render_category_detail(detail, search=find_var.get()))
            body.configure(state="disabled")
            shown[:] = filter_conversations(detail.items, find_var.get())
            listing.delete(0, "end")
            for record in shown:
                listing.insert("end", f"{record.label} ({record.sentiment or 'unknown'})")

        def _on_pick(_event) -> None:
            picked = listing.curselection()
            if picked:
                _open_transcript(shown[picked[0]])

        def _on_close() -> None:
            dashboard.filters.close_detail(category)
            win.destroy()

        find_var.trace_add("write", _render)
        listing.bind("<Double-Button-1>", _on_pick)
        win.protocol("WM_DELETE_WINDOW", _on_close)
        _render()

    # Chat ----------------------------------------------------------------------
    def _append_chat(who: str, text: str) -> None:
        chat_log.configure(state="normal")
        stamp = datetime.now().strftime("%H:%M")
        chat_log.insert("end", f"[{stamp}] {who}: {text}\n\n")
        chat_log.see("end")
        chat_log.configure(state="disabled")

    def _remote_worker(prompt: str) -> None:
        try:
            identity = load_identity(identity_path)
            thread_id = remote.ensure_thread(identity, identity_path)
            remote.send_message(thread_id, prompt)
            page = remote.list_messages(thread_id)
            replies = [m for m in page.messages if m.role == "assistant"]
            inbox.put(("chat", replies[-1].text if replies else "(no reply yet)"))
        except (BackendError, OSError, ValueError) as exc:
            inbox.put(("chat_error", exc))

    def _ask(question: str) -> None:
        question = question.strip()
        if not question:
            return
        chat_var.set("")
        _append_chat("You", question)
        views = dashboard.views
        if remote is None:
            answer = respond(
                question, views.bubble_visible, dashboard.filters.state.selected_categories, rng
            )
            _append_chat("Assistant", answer)
            return
        prompt = build_prompt(
            question, views.bubble_visible, config.assistant.include_context
        )
        threading.Thread(target=_remote_worker, args=(prompt,), daemon=True).start()

    # Paging --------------------------------------------------------------------
    def _page_worker() -> None:
        try:
            inbox.put(("page", store.fetch_next()))
        except (BackendError, OSError, ValueError) as exc:
            inbox.put(("page_error", exc))
        finally:
            inbox.put(("page_done", None))

    def _load_more() -> None:
        if state["loading"] or store.exhausted:
            return
        state["loading"] = True
        threading.Thread(target=_page_worker, daemon=True).start()

    def _poll_inbox() -> None:
        while True:
            try:
                kind, payload = inbox.get_nowait()
            except queue.Empty:
                break
            if kind == "page_done":
                state["loading"] = False
            elif kind == "page":
                store.apply_page(payload)
                _refresh()
            elif kind == "page_error":
                store.record_failure(payload)
                _refresh()
            elif kind == "chat":
                _append_chat("Assistant", payload)
            elif kind == "chat_error":
                logger.warning("Assistant call failed: %s", payload)
                _append_chat("Assistant", f"Sorry, the assistant is unavailable ({payload}).")
        root.after(100, _poll_inbox)

    _append_chat("Assistant", WELCOME_TEXT)
    logger.info("vconlens started (log: %s)", log_path)
    _load_more()
    _poll_inbox()
    root.mainloop()
