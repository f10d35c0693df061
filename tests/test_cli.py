import os
import signal

from fastgrep import cli
from fastgrep import discover as discover_mod
from fastgrep.models import MatchRecord
from fastgrep.output import RecordPrinter, format_plain, format_tsv


def _tree(tmp_path):
    (tmp_path / "a.txt").write_text("foo\nFOO bar\nbaz\n", encoding="utf-8")
    (tmp_path / "b.txt").write_text("nope\n", encoding="utf-8")
    return str(tmp_path / "a.txt")


def test_plain_output(tmp_path, capsys):
    a = _tree(tmp_path)
    assert cli.main(["foo", str(tmp_path), "--no-color"]) == 0
    out = capsys.readouterr().out
    assert out == f"{a}[1]:foo\n"


def test_ignore_case_and_tsv(tmp_path, capsys):
    a = _tree(tmp_path)
    assert cli.main(["-i", "--tsv", "-w", "1", "foo", str(tmp_path)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [f"{a}\t\t1\tfoo", f"{a}\t\t2\tFOO bar"]


def test_color_output(tmp_path, capsys):
    _tree(tmp_path)
    assert cli.main(["foo", str(tmp_path), "--color"]) == 0
    assert "\033[32m" in capsys.readouterr().out


def test_default_folder_is_cwd(tmp_path, capsys, monkeypatch):
    _tree(tmp_path)
    monkeypatch.chdir(tmp_path)
    assert cli.main(["baz", "--no-color"]) == 0
    assert capsys.readouterr().out == f"{os.path.join('.', 'a.txt')}[3]:baz\n"


def test_missing_directory(tmp_path, capsys):
    missing = str(tmp_path / "nope")
    assert cli.main(["foo", missing]) == cli.EXIT_CONFIG
    err = capsys.readouterr().err
    assert err == f"Error: directory '{missing}' does not exist\n"


def test_file_instead_of_directory(tmp_path, capsys):
    a = _tree(tmp_path)
    assert cli.main(["foo", a]) == cli.EXIT_CONFIG
    assert "is not a directory" in capsys.readouterr().err


def test_invalid_worker_count(tmp_path, capsys):
    assert cli.main(["foo", str(tmp_path), "-w", "0"]) == cli.EXIT_CONFIG
    assert "workers must be at least 1" in capsys.readouterr().err


def test_empty_term(tmp_path, capsys):
    assert cli.main(["", str(tmp_path)]) == cli.EXIT_CONFIG
    assert "search term must not be empty" in capsys.readouterr().err


def test_list_options():
    args = cli.build_parser().parse_args(
        ["foo", ".", "--exts", ".PY; txt", "--exclude-folders", "build,dist", "--perfile", "3"]
    )
    config = cli.build_config(args)
    assert config.extensions == frozenset({"py", "txt"})
    assert config.exclude_dirs == frozenset({"build", "dist"})
    assert config.max_per_file == 3


def test_sigint_handler_restored(tmp_path, capsys):
    _tree(tmp_path)
    before = signal.getsignal(signal.SIGINT)
    cli.main(["foo", str(tmp_path)])
    assert signal.getsignal(signal.SIGINT) is before


def test_interrupt_prints_one_notice(tmp_path, capsys, monkeypatch):
    _tree(tmp_path)
    handlers = []
    real_signal = signal.signal

    def capture(signum, handler):
        handlers.append(handler)
        return real_signal(signum, handler)

    monkeypatch.setattr(cli.signal, "signal", capture)

    class InterruptingPrinter(RecordPrinter):
        def __call__(self, record):
            handlers[0](signal.SIGINT, None)
            handlers[0](signal.SIGINT, None)
            super().__call__(record)

    monkeypatch.setattr(cli, "RecordPrinter", InterruptingPrinter)
    assert cli.main(["-i", "foo", str(tmp_path), "--no-color"]) == cli.EXIT_INTERRUPTED
    captured = capsys.readouterr()
    assert captured.err.count("Interrupt received, shutting down...") == 1
    assert "[1]:foo" in captured.out


def test_formatters():
    record = MatchRecord("a.txt", 3, "x\ty")
    assert format_plain(record) == "a.txt[3]:x\ty"
    assert format_tsv(record) == "a.txt\t\t3\tx y"
    doc = MatchRecord("r.docx", 2, "hello", "paragraph:2")
    assert format_plain(doc) == "r.docx:paragraph:2[2]:hello"
    assert format_tsv(doc) == "r.docx\tparagraph:2\t2\thello"


def test_internal_failure_is_not_reported_as_interrupt(tmp_path, capsys, monkeypatch):
    _tree(tmp_path)

    def broken_walk(*args, **kwargs):
        raise RuntimeError("walk exploded")

    monkeypatch.setattr(discover_mod, "discover", broken_walk)
    assert cli.main(["foo", str(tmp_path)]) == cli.EXIT_FAILURE
    assert "discovery failed: walk exploded" in capsys.readouterr().err
