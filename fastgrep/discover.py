# discover.py - depth-first directory walk feeding the work queue

import os
from typing import AbstractSet, Iterable

from .cancel import CancellationToken
from .channel import BoundedChannel
from .diag import Diagnostics
from .models import WalkOutcome

EXCLUDED_DIRS = frozenset({"node_modules", "vendor"})


def is_excluded(name: str, extra: AbstractSet[str] = frozenset()) -> bool:
    return not name or name.startswith(".") or name in EXCLUDED_DIRS or name in extra


def _walk(
    root: str,
    queue: BoundedChannel,
    token: CancellationToken,
    diagnostics: Diagnostics,
    excluded: AbstractSet[str],
) -> WalkOutcome:
    # explicit stack: depth is bounded by the filesystem, not the interpreter
    pending = [root]
    while pending:
        if token.cancelled:
            return WalkOutcome.CANCELLED
        path = pending.pop()
        try:
            with os.scandir(path) as it:
                entries = list(it)
        except OSError as exc:
            diagnostics.warn(f"failed to read directory {path}", exc.strerror or str(exc))
            continue

        subdirs = []
        for entry in entries:
            if is_excluded(entry.name, excluded):
                continue
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False
            if is_dir:
                subdirs.append(entry.path)
            elif not queue.put(entry.path):
                return WalkOutcome.CANCELLED
        # reversed so the first subdirectory is popped next, depth-first
        pending.extend(reversed(subdirs))
    return WalkOutcome.COMPLETED


def discover(
    root: str,
    queue: BoundedChannel,
    token: CancellationToken,
    diagnostics: Diagnostics,
    exclude_dirs: Iterable[str] = (),
) -> WalkOutcome:
    """Enqueue every file under ``root``, skipping hidden and excluded names.

    An unreadable directory is reported and its subtree abandoned; the walk
    carries on with its siblings. Does not close ``queue``.
    """
    return _walk(root, queue, token, diagnostics, frozenset(exclude_dirs))


def run_discovery(
    root: str,
    queue: BoundedChannel,
    token: CancellationToken,
    diagnostics: Diagnostics,
    exclude_dirs: Iterable[str] = (),
) -> WalkOutcome:
    """Walk ``root`` and close ``queue`` exactly once, whatever happens."""
    outcome = WalkOutcome.CANCELLED
    try:
        outcome = discover(root, queue, token, diagnostics, exclude_dirs)
    except Exception as exc:
        diagnostics.error(f"discovery failed: {exc}")
        token.cancel()
    finally:
        queue.close()
    if outcome is WalkOutcome.COMPLETED:
        diagnostics.info("Discovery complete")
    else:
        diagnostics.info("Discovery cancelled")
    return outcome
