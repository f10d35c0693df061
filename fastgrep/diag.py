# diag.py - stderr diagnostics: warnings, verbose progress and status lines

import sys
import threading
from typing import Optional, Set, TextIO


def _clean_detail(detail: Optional[str]) -> Optional[str]:
    if not detail:
        return None
    cleaned = " ".join(str(detail).split())
    if len(cleaned) > 500:
        cleaned = cleaned[:497] + "..."
    return cleaned


class Diagnostics:
    def __init__(self, verbose: bool = False, stream: Optional[TextIO] = None):
        self.verbose = bool(verbose)
        self._stream = stream
        self._lock = threading.RLock()
        self._warned: Set[str] = set()

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def _write(self, message: str) -> None:
        with self._lock:
            self.stream.write(message + "\n")
            self.stream.flush()

    def info(self, message: str) -> None:
        if self.verbose:
            self._write(message)

    def warn(self, message: str, detail: Optional[str] = None) -> None:
        detail = _clean_detail(detail)
        if detail:
            message += f" ({detail})"
        self._write(f"Warning: {message}")

    def warn_once(self, kind: str, message: str) -> None:
        with self._lock:
            if kind in self._warned:
                return
            self._warned.add(kind)
        self._write(f"Warning: {message}")

    def error(self, message: str) -> None:
        self._write(f"Error: {message}")

    def notice(self, message: str) -> None:
        self._write(message)

    def status(self, tag: str, *parts: object) -> None:
        if not self.verbose:
            return
        payload = "\t".join(str(p) for p in parts)
        self._write(f"#{tag}\t{payload}")
