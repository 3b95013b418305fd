# service/cli.py
"""
Command-line entrypoints for the job crawler.

Subcommands
-----------
crawl [--input PATH] [--kwargs k=v ...] [--output-dir DIR]
      [--max-results N] [--no-details] [--print-records]
    - Runs modules.job_crawler.main.run(...) once
    - Writes records/errors as JSONL when an output directory is given
    - Prints the run statistics and any terminal task errors

validate-input [--input PATH] [--kwargs k=v ...]
    - Builds Settings from the input, prints the seed URL, nonzero on error

Override keys may be dotted to reach into nested input objects:
    --kwargs proxyConfiguration.proxyUrls='["http://proxy:8000"]'
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

from modules.job_crawler import main as _crawler
from modules.job_crawler.lib.config import ConfigError, Settings
from service import logging_utils as L

LOG = logging.getLogger("service.cli")

STAT_KEYS = (
    "records_emitted",
    "list_pages",
    "detail_pages",
    "cards_found",
    "duplicates_skipped",
    "retries",
    "failed_tasks",
    "duration_s",
    "stop_reason",
)


def _configure_logging(verbose: bool) -> None:
    if logging.getLogger().handlers:
        return
    level_name = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)-7s %(threadName)s [%(name)s] %(message)s",
    )


# ------------------------------ Input overrides ------------------------------
def _coerce(text: str) -> Any:
    """JSON literal when it parses (numbers, booleans, lists, objects), else the raw text."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def _assign(target: dict[str, Any], dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    node = target
    for name in parents:
        child = node.get(name)
        if not isinstance(child, dict):
            child = node[name] = {}
        node = child
    node[leaf] = value


def _parse_overrides(items: Iterable[str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        key = key.strip()
        if not sep or not key or any(not part for part in key.split(".")):
            raise argparse.ArgumentTypeError(f"expected key=value, got {item!r}")
        _assign(overrides, key, _coerce(raw.strip()))
    return overrides


def _crawl_input(args: argparse.Namespace) -> dict[str, Any]:
    kwargs = _parse_overrides(args.kwargs or [])
    if args.input:
        kwargs["input_path"] = args.input
    if getattr(args, "output_dir", None):
        kwargs["output_dir"] = args.output_dir
    if getattr(args, "max_results", None) is not None:
        kwargs["results_wanted"] = args.max_results
    if getattr(args, "no_details", False):
        kwargs["collect_details"] = False
    return kwargs


# --------------------------------- Output ------------------------------------
def _print_stats(result: dict[str, Any]) -> None:
    width = max(len(k) for k in STAT_KEYS)
    print("crawl statistics")
    for key in STAT_KEYS:
        print(f"  {key.ljust(width)}  {result.get(key)}")
    errors = result.get("errors") or []
    if errors:
        print(f"failed tasks ({len(errors)}):")
        for line in errors:
            print(f"  - {line}")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ------------------------------- Subcommands ---------------------------------
def cmd_validate_input(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env_and_kwargs(_crawl_input(args))
    except ConfigError as e:
        print(f"ERROR: input invalid: {e}", file=sys.stderr)
        return 1
    details = "with detail pages" if settings.collect_details else "listing pages only"
    print(f"OK: input is valid. Start URL: {settings.search_url} ({details})")
    return 0


def cmd_crawl(args: argparse.Namespace) -> int:
    run_id = uuid.uuid4().hex[:12]
    started = time.monotonic()
    kwargs = _crawl_input(args)
    LOG.debug("crawl %s input=%s", run_id, L.redact(kwargs))

    try:
        result = _crawler.run(**kwargs)
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        return 130
    except ConfigError as e:
        print(f"ERROR: input invalid: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": _utc_now(),
            "where": "cli.crawl",
            "run_id": run_id,
            "input": kwargs,
            "error": repr(e),
            "elapsed_ms": int((time.monotonic() - started) * 1000),
        })
        return 1

    L.write_activity_log({
        "ts": _utc_now(),
        "event": "cli_crawl",
        "run_id": run_id,
        "records_emitted": result.get("records_emitted"),
        "failed_tasks": result.get("failed_tasks"),
        "stop_reason": result.get("stop_reason"),
        "elapsed_ms": int((time.monotonic() - started) * 1000),
    })

    _print_stats(result)
    if args.print_records:
        for record in result.get("records", []):
            print(json.dumps(record, ensure_ascii=False, default=str))
    return 0


# --------------------------------- Parser ------------------------------------
def _input_options(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--input", metavar="PATH", help="JSON file with the crawl input.")
    sp.add_argument(
        "--kwargs",
        metavar="KEY=VALUE",
        nargs="*",
        help="Input overrides, e.g. startUrl=https://... results_wanted=20 (JSON values, dotted keys).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="job-crawler", description="Crawl a job-listing site into JSON records.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    crawl = sub.add_parser("crawl", help="Run one crawl.")
    _input_options(crawl)
    crawl.add_argument("--output-dir", metavar="DIR", help="Write records.jsonl / errors.jsonl here.")
    crawl.add_argument("--max-results", type=int, metavar="N", help="Shortcut for results_wanted=N (0 = no cap).")
    crawl.add_argument("--no-details", action="store_true", help="Emit listing cards without visiting detail pages.")
    crawl.add_argument(
        "--print-records",
        action="store_true",
        help="Print records as JSON lines (in-memory runs only, i.e. without --output-dir).",
    )
    crawl.set_defaults(func=cmd_crawl)

    validate = sub.add_parser("validate-input", help="Check the crawl input without fetching anything.")
    _input_options(validate)
    validate.set_defaults(func=cmd_validate_input)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    _configure_logging(args.verbose)
    try:
        return args.func(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
