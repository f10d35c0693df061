# output.py - record sinks used by the command line: plain, coloured and TSV

import sys
import threading
from typing import Optional, TextIO

from .models import MatchRecord

GREEN = "\033[32m"
YELLOW = "\033[33m"
RESET = "\033[0m"


def format_plain(record: MatchRecord, color: bool = False) -> str:
    location = f"{record.path}:{record.entry}" if record.entry else record.path
    if color:
        return f"{GREEN}{location}{RESET}[{YELLOW}{record.line_number}{RESET}]:{record.line}"
    return f"{location}[{record.line_number}]:{record.line}"


def format_tsv(record: MatchRecord) -> str:
    line = record.line.replace("\t", " ").rstrip("\r\n")
    return f"{record.path}\t{record.entry}\t{record.line_number}\t{line}"


class RecordPrinter:
    def __init__(self, stream: Optional[TextIO] = None, color: bool = False, tsv: bool = False):
        self._stream = stream
        self.color = color
        self.tsv = tsv
        self.count = 0
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def __call__(self, record: MatchRecord) -> None:
        text = format_tsv(record) if self.tsv else format_plain(record, self.color)
        with self._lock:
            self.stream.write(text + "\n")
            self.stream.flush()
            self.count += 1
