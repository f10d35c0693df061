import io
import os

import pytest

from fastgrep import scanner
from fastgrep.diag import Diagnostics
from fastgrep.models import SearchConfig
from fastgrep.pipeline import search
from fastgrep.scanner import scan_file


def _make_docx(path):
    docx = pytest.importorskip("docx")
    doc = docx.Document()
    doc.add_paragraph("Introduction")
    doc.add_paragraph("the Needle is here")
    table = doc.add_table(rows=2, cols=2)
    table.cell(1, 0).text = "needle"
    table.cell(1, 1).text = "cell"
    doc.save(path)


def _make_xlsx(path):
    openpyxl = pytest.importorskip("openpyxl")
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Data"
    ws["A1"] = "header"
    ws["A2"] = "a needle in a sheet"
    ws["A3"] = 42
    wb.save(path)


def test_docx_paragraphs_and_tables(tmp_path):
    path = str(tmp_path / "report.docx")
    _make_docx(path)

    hits = scan_file(path, "needle", case_insensitive=True, word=True)

    assert hits is not None
    paragraph_hits = [h for h in hits if h.entry.startswith("paragraph:")]
    table_hits = [h for h in hits if h.entry.startswith("table")]
    assert [h.line for h in paragraph_hits] == ["the Needle is here"]
    assert paragraph_hits[0].entry == f"paragraph:{paragraph_hits[0].line_number}"
    assert [(h.entry, h.line) for h in table_hits] == [("table1:row2", "needle\tcell")]
    assert table_hits[0].line_number > paragraph_hits[0].line_number
    numbers = [h.line_number for h in hits]
    assert numbers == sorted(set(numbers))


def test_docx_ignored_without_flag(tmp_path):
    path = str(tmp_path / "report.docx")
    _make_docx(path)
    assert scan_file(path, "needle") is None


def test_xlsx_cells(tmp_path):
    path = str(tmp_path / "book.xlsx")
    _make_xlsx(path)

    hits = scan_file(path, "needle", excel=True)

    assert [(h.line_number, h.entry, h.line) for h in hits] == [(2, "Data!A2", "a needle in a sheet")]
    assert scan_file(path, "42", excel=True)[0].entry == "Data!A3"


def test_xlsx_numbering_increases_across_sheets(tmp_path):
    openpyxl = pytest.importorskip("openpyxl")
    wb = openpyxl.Workbook()
    first = wb.active
    first.title = "S1"
    first["A5"] = "needle one"
    first["B5"] = "needle two"
    second = wb.create_sheet("S2")
    second["A1"] = "needle three"
    path = str(tmp_path / "sheets.xlsx")
    wb.save(path)

    hits = scan_file(path, "needle", excel=True)

    assert [h.entry for h in hits] == ["S1!A5", "S1!B5", "S2!A1"]
    assert [h.line_number for h in hits] == [1, 2, 3]


def test_corrupt_xlsx_warns_once(tmp_path):
    pytest.importorskip("openpyxl")
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a workbook")
    stream = io.StringIO()
    diag = Diagnostics(stream=stream)

    assert scan_file(str(path), "x", excel=True, diagnostics=diag) is None
    assert scan_file(str(path), "x", excel=True, diagnostics=diag) is None
    assert stream.getvalue().count("failed to read .xlsx") == 1


def test_missing_library_is_a_one_time_warning(tmp_path, monkeypatch):
    monkeypatch.setattr(scanner, "Document", None)
    path = tmp_path / "a.docx"
    path.write_bytes(b"PK")
    stream = io.StringIO()
    diag = Diagnostics(stream=stream)

    assert scan_file(str(path), "x", word=True, diagnostics=diag) is None
    assert scan_file(str(path), "x", word=True, diagnostics=diag) is None
    assert stream.getvalue().count("python-docx is not installed") == 1


def test_pipeline_with_documents(tmp_path):
    _make_docx(str(tmp_path / "r.docx"))
    _make_xlsx(str(tmp_path / "b.xlsx"))
    (tmp_path / "notes.txt").write_text("needle\n", encoding="utf-8")
    records = []

    search(
        SearchConfig(term="needle", root=str(tmp_path), word=True, excel=True, workers=3),
        records.append,
        Diagnostics(stream=io.StringIO()),
    )

    by_file = {}
    for r in records:
        by_file.setdefault(os.path.basename(r.path), []).append(r)
    assert sorted(by_file) == ["b.xlsx", "notes.txt", "r.docx"]
    assert by_file["notes.txt"][0].entry == ""
