import argparse
import os
import time
from collections import Counter

from vconlens.cli import build_source
from vconlens.config import Config, load_config
from vconlens.convex_client import BackendError
from vconlens.store import RecordStore


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", default="vconlens_config.yml", help="Config.")
    parser.add_argument("--records", help="Directory of vCon JSON files.")
    parser.add_argument("--convex-url", help="Convex deployment URL.")
    parser.add_argument("--page-size", type=int, default=5, help="Items per page.")
    parser.add_argument("--max-pages", type=int, default=50, help="Stop after N pages.")
    args = parser.parse_args()

    cfg = load_config(args.config) if os.path.exists(args.config) else Config(base_dir="")
    source = build_source(cfg, directory=args.records, convex_url=args.convex_url)
    store = RecordStore(source, page_size=args.page_size)
    print(f"Source: {type(source).__name__}")

    for _ in range(args.max_pages):
        if store.exhausted:
            break
        start = time.perf_counter()
        try:
            page = store.fetch_next()
        except (BackendError, OSError, ValueError) as exc:
            print(f"Page {store.pages_loaded + 1} failed: {exc}")
            return 1
        elapsed_ms = (time.perf_counter() - start) * 1000
        added = store.apply_page(page)
        print(
            f"Page {store.pages_loaded}: {len(page.records)} records, {added} new, "
            f"{len(page.records) - added} duplicate, {elapsed_ms:.0f} ms, "
            f"next={page.next_cursor!r}"
        )

    missing = sum(1 for r in store.records if r.insights is None)
    categories = Counter(r.category for r in store.records if r.category is not None)
    print(f"Total: {len(store.records)} records ({store.status})")
    print(f"Without insights: {missing}")
    for category, count in categories.most_common():
        print(f"  {category}: {count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
