# fastgrep - concurrent recursive text search

from .cancel import CancellationToken
from .channel import BoundedChannel, ChannelClosedError
from .diag import Diagnostics
from .discover import run_discovery
from .models import (
    MatchRecord,
    SearchConfig,
    SearchSummary,
    TakeStatus,
    WalkOutcome,
    WorkerExit,
    WorkerReport,
)
from .pipeline import SearchCoordinator, search
from .scanner import scan_file

__version__ = "0.1.0"

__all__ = [
    "BoundedChannel",
    "CancellationToken",
    "ChannelClosedError",
    "Diagnostics",
    "MatchRecord",
    "SearchConfig",
    "SearchCoordinator",
    "SearchSummary",
    "TakeStatus",
    "WalkOutcome",
    "WorkerExit",
    "WorkerReport",
    "run_discovery",
    "scan_file",
    "search",
]
