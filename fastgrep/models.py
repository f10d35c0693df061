# models.py - records and configuration passed between pipeline stages

import enum
from dataclasses import dataclass, field
from typing import FrozenSet

DEFAULT_WORKERS = 10
DEFAULT_QUEUE_SIZE = 100
DEFAULT_RESULT_BUFFER = 100


@dataclass(frozen=True)
class MatchRecord:
    path: str
    line_number: int
    line: str
    entry: str = ""


@dataclass(frozen=True)
class SearchConfig:
    term: str
    root: str = "."
    workers: int = DEFAULT_WORKERS
    case_insensitive: bool = False
    verbose: bool = False
    queue_size: int = DEFAULT_QUEUE_SIZE
    result_buffer: int = DEFAULT_RESULT_BUFFER
    extensions: FrozenSet[str] = field(default_factory=frozenset)
    exclude_dirs: FrozenSet[str] = field(default_factory=frozenset)
    max_per_file: int = 0
    word: bool = False
    excel: bool = False


class TakeStatus(enum.Enum):
    ITEM = "item"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class WorkerExit(enum.Enum):
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class WalkOutcome(enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class WorkerReport:
    worker_id: int
    exit: WorkerExit
    files_scanned: int = 0
    hits: int = 0


@dataclass(frozen=True)
class SearchSummary:
    files_scanned: int
    matches: int
    elapsed: float
    cancelled: bool
