# cli.py - command line front end: parse, validate, wire SIGINT, print results

import argparse
import os
import signal
import sys
from typing import List, Optional

from .diag import Diagnostics
from .models import DEFAULT_QUEUE_SIZE, DEFAULT_WORKERS, SearchConfig
from .output import RecordPrinter
from .pipeline import SearchCoordinator
from .scanner import normalize_ext

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class ConfigError(ValueError):
    pass


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="fastgrep", description="Concurrent recursive text search")
    ap.add_argument("term", help="text to search for")
    ap.add_argument("folder", nargs="?", default=".", help="directory to search (default: current directory)")
    ap.add_argument("-w", "--workers", type=int, default=DEFAULT_WORKERS, help="number of concurrent workers")
    ap.add_argument("-i", "--ignore-case", action="store_true", help="case-insensitive search")
    ap.add_argument("-v", "--verbose", action="store_true", help="show progress on stderr")
    ap.add_argument("-c", "--color", dest="color", action="store_true", default=None, help="colorize output")
    ap.add_argument("--no-color", dest="color", action="store_false", help="never colorize output")
    ap.add_argument("--tsv", action="store_true", help="print path, entry, line and text separated by tabs")
    ap.add_argument("--exts", default="", help="only scan these extensions (comma or semicolon separated)")
    ap.add_argument("--exclude-folders", default="", help="extra directory names to skip")
    ap.add_argument("--perfile", type=int, default=0, help="stop after this many hits per file (0 = no limit)")
    ap.add_argument("--queue-size", type=int, default=DEFAULT_QUEUE_SIZE, help="work queue capacity")
    ap.add_argument("--word", action="store_true", help="search .docx documents")
    ap.add_argument("--excel", action="store_true", help="search .xlsx workbooks")
    return ap


def split_list(value: str) -> frozenset:
    return frozenset(e.strip() for e in (value or "").replace(",", ";").split(";") if e.strip())


def build_config(args: argparse.Namespace) -> SearchConfig:
    if not args.term:
        raise ConfigError("search term must not be empty")
    if args.workers < 1:
        raise ConfigError("workers must be at least 1")
    if args.queue_size < 1:
        raise ConfigError("queue size must be at least 1")
    if args.perfile < 0:
        raise ConfigError("perfile must not be negative")
    if not os.path.exists(args.folder):
        raise ConfigError(f"directory '{args.folder}' does not exist")
    if not os.path.isdir(args.folder):
        raise ConfigError(f"'{args.folder}' is not a directory")
    return SearchConfig(
        term=args.term,
        root=args.folder,
        workers=args.workers,
        case_insensitive=args.ignore_case,
        verbose=args.verbose,
        queue_size=args.queue_size,
        extensions=frozenset(normalize_ext(e) for e in split_list(args.exts)),
        exclude_dirs=split_list(args.exclude_folders),
        max_per_file=args.perfile,
        word=args.word,
        excel=args.excel,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    diagnostics = Diagnostics(verbose=args.verbose)
    try:
        config = build_config(args)
    except ConfigError as exc:
        diagnostics.error(str(exc))
        return EXIT_CONFIG

    color = args.color
    if color is None:
        color = sys.stdout.isatty()
    printer = RecordPrinter(color=color and not args.tsv, tsv=args.tsv)
    coordinator = SearchCoordinator(config, printer, diagnostics)

    interrupted = []

    def on_interrupt(signum, frame):
        interrupted.append(signum)
        if coordinator.cancel():
            diagnostics.notice("\nInterrupt received, shutting down...")

    previous = signal.signal(signal.SIGINT, on_interrupt)
    try:
        summary = coordinator.run()
    finally:
        signal.signal(signal.SIGINT, previous)
        try:
            sys.stdout.flush()
        except Exception:
            pass

    if interrupted:
        return EXIT_INTERRUPTED
    # cancelled without an interrupt: a fatal discovery error or a crashed worker
    return EXIT_FAILURE if summary.cancelled else EXIT_OK
