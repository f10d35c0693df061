# scanner.py - per-file matcher: size and binary gates, bounded line reader, optional Office documents

import os
import stat
from typing import Iterable, Iterator, List, Optional, Tuple

from .diag import Diagnostics
from .models import MatchRecord

# Optional dependencies
try:  # python-docx for .docx
    from docx import Document  # type: ignore
except Exception:  # pragma: no cover - dependency may be missing
    Document = None  # type: ignore

try:  # openpyxl for .xlsx
    import openpyxl  # type: ignore
    from openpyxl.utils.cell import get_column_letter  # type: ignore
except Exception:  # pragma: no cover - dependency may be missing
    openpyxl = None  # type: ignore
    get_column_letter = None  # type: ignore


MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_LINE_LENGTH = 10_000
BINARY_SAMPLE_SIZE = 512
CONTROL_CHAR_RATIO = 0.3

# a UTF-8 character is at most 4 bytes, plus room for "\r\n"
_LINE_CHUNK = MAX_LINE_LENGTH * 4 + 2
_ALLOWED_CONTROL = frozenset(b"\t\n\r")


def normalize_ext(ext: str) -> str:
    return ext.lower().lstrip(".")


def should_target(path: str, exts: Iterable[str]) -> bool:
    if not exts:
        return True
    return normalize_ext(os.path.splitext(path)[1]) in exts


def looks_binary(sample: bytes) -> bool:
    """Best-effort sniff of the leading bytes of a file.

    Any NUL byte marks the sample as binary; otherwise it is binary when more
    than 30% of the bytes are control characters other than tab, LF and CR.
    UTF-16 text without NULs in the sample and control-heavy text files are
    misclassified; that is accepted.
    """
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    control = sum(1 for b in sample if b < 0x20 and b not in _ALLOWED_CONTROL)
    return control / len(sample) > CONTROL_CHAR_RATIO


def iter_raw_lines(reader) -> Iterator[Optional[bytes]]:
    """Yield each physical line without its terminator.

    Lines too long to ever be scanned are consumed chunk by chunk and yielded
    as ``None`` so callers keep counting them without holding them in memory.
    """
    while True:
        chunk = reader.readline(_LINE_CHUNK)
        if not chunk:
            return
        if len(chunk) == _LINE_CHUNK and not chunk.endswith(b"\n"):
            while chunk and not chunk.endswith(b"\n"):
                chunk = reader.readline(_LINE_CHUNK)
            yield None
            continue
        if chunk.endswith(b"\n"):
            chunk = chunk[:-1]
        if chunk.endswith(b"\r"):
            chunk = chunk[:-1]
        yield chunk


def iter_text_lines(reader) -> Iterator[Tuple[int, Optional[str]]]:
    """Number every physical line; ``None`` marks a line excluded from matching."""
    for lineno, raw in enumerate(iter_raw_lines(reader), 1):
        if raw is None:
            yield lineno, None
            continue
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            yield lineno, None
            continue
        if len(text) > MAX_LINE_LENGTH:
            yield lineno, None
            continue
        yield lineno, text


def build_matcher(term: str, case_insensitive: bool):
    if case_insensitive:
        folded = term.casefold()

        def matcher(line: str) -> bool:
            return folded in line.casefold()

        return matcher

    def matcher(line: str) -> bool:
        return term in line

    return matcher


def scan_text_file(
    path: str,
    matcher,
    perfile: int = 0,
    diagnostics: Optional[Diagnostics] = None,
) -> Optional[List[MatchRecord]]:
    try:
        reader = open(path, "rb")
    except OSError:
        return None
    hits: List[MatchRecord] = []
    with reader:
        try:
            if looks_binary(reader.read(BINARY_SAMPLE_SIZE)):
                return None
            reader.seek(0)
            for lineno, text in iter_text_lines(reader):
                if text is None or not matcher(text):
                    continue
                hits.append(MatchRecord(path, lineno, text))
                if perfile and len(hits) >= perfile:
                    break
        except OSError as exc:
            if diagnostics is not None:
                diagnostics.warn(f"error reading file {path}", str(exc))
            return None
    return hits or None


def iter_docx_units(path: str) -> Iterator[Tuple[str, str]]:
    doc = Document(path)
    for idx, para in enumerate(doc.paragraphs, 1):
        yield f"paragraph:{idx}", para.text.strip()
    for t_idx, table in enumerate(doc.tables, 1):
        for r_idx, row in enumerate(table.rows, 1):
            text = "\t".join(cell.text.strip() for cell in row.cells)
            yield f"table{t_idx}:row{r_idx}", text.strip()


def iter_xlsx_units(path: str) -> Iterator[Tuple[str, str]]:
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        for sheet in wb.worksheets:
            for row_idx, row in enumerate(sheet.iter_rows(values_only=True), 1):
                for col_idx, value in enumerate(row, 1):
                    text = "" if value is None else str(value).strip()
                    if text:
                        yield f"{sheet.title}!{get_column_letter(col_idx)}{row_idx}", text
    finally:
        wb.close()


# extension -> (module that must be importable, unit reader, library name)
_DOCUMENT_READERS = {
    "docx": (lambda: Document, iter_docx_units, "python-docx"),
    "xlsx": (lambda: openpyxl, iter_xlsx_units, "openpyxl"),
}


def scan_document(
    path: str,
    ext: str,
    matcher,
    perfile: int = 0,
    diagnostics: Optional[Diagnostics] = None,
) -> Optional[List[MatchRecord]]:
    """Scan an Office document unit by unit (paragraph, table row or cell).

    Units are numbered by one counter per file in reading order, so
    ``line_number`` is the unit's ordinal, strictly increasing, and ``entry``
    says where the unit lives. Documents skip the binary sniff.
    """
    available, reader, library = _DOCUMENT_READERS[ext]
    if available() is None:
        if diagnostics is not None:
            diagnostics.warn_once(ext, f"{library} is not installed, skipping .{ext} files")
        return None
    hits: List[MatchRecord] = []
    try:
        for ordinal, (entry, text) in enumerate(reader(path), 1):
            if not text or len(text) > MAX_LINE_LENGTH or not matcher(text):
                continue
            hits.append(MatchRecord(path, ordinal, text, entry))
            if perfile and len(hits) >= perfile:
                break
    except Exception as exc:
        if diagnostics is not None:
            diagnostics.warn_once(f"{ext}:{path}", f"failed to read .{ext} {path} ({exc})")
        return None
    return hits or None


def scan_file(
    path: str,
    term: str,
    case_insensitive: bool = False,
    *,
    matcher=None,
    perfile: int = 0,
    word: bool = False,
    excel: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Optional[List[MatchRecord]]:
    """Scan one file for ``term``.

    Returns the matches in line order, or ``None`` when the file is skipped:
    not a regular file, too large, binary, unreadable, or without a match.
    """
    try:
        st = os.stat(path)
    except OSError:
        return None
    # FIFOs and device nodes can block in open() where cancellation cannot reach
    if not stat.S_ISREG(st.st_mode) or st.st_size > MAX_FILE_SIZE:
        return None
    if matcher is None:
        matcher = build_matcher(term, case_insensitive)
    ext = normalize_ext(os.path.splitext(path)[1])
    if (ext == "docx" and word) or (ext == "xlsx" and excel):
        return scan_document(path, ext, matcher, perfile, diagnostics)
    return scan_text_file(path, matcher, perfile, diagnostics)
