from __future__ import annotations

import logging
from pathlib import Path

import pytest

from builders import definition, document, index, item, occurrence, reference, span, unit, write_index
from deadsym import api, cli
from deadsym.scip_index import SymbolRole


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DEADSYM_LOG_LEVEL", raising=False)
    root_logger = logging.getLogger()
    saved = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = saved
    root_logger.setLevel(level)


def _write_build(project):
    lib = unit(
        "lib",
        (2, 2),
        defs=[
            definition("Function", "foo", item(0, 1), span("src/a.rs", 10, 1, 10, 9)),
            definition("Function", "bar", item(0, 2), span("src/a.rs", 20, 1, 20, 9)),
        ],
    )
    app = unit(
        "app",
        (1, 1),
        externals=[("lib", (2, 2))],
        refs=[reference("Function", item(1, 2), span("src/main.rs", 2, 5))],
    )
    project.write("liblib.json", lib)
    return project.write("app.json", app)


def test_save_analysis_report(project, capsys):
    leaf = _write_build(project)
    assert cli.main([str(leaf), "--jobs", "2"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines() == ["src/a.rs:10:1: unused Function 'foo'"]


def test_summary_goes_to_stderr(project, capsys):
    leaf = _write_build(project)
    assert cli.main([str(leaf), "--summary"]) == 0
    captured = capsys.readouterr()
    assert "unused=1" in captured.err
    assert "units=2" in captured.err
    assert "unused=" not in captured.out


def test_scip_report(tmp_path: Path, capsys):
    sym = "rust-analyzer cargo pkg 0.1.0 pkg/Foo#"
    idx = index([document("src/lib.rs", [occurrence(sym, [0, 7, 10], int(SymbolRole.Definition))], [(sym, "Foo", 49)])])
    path = write_index(tmp_path / "index.scip", idx)
    assert cli.main([str(path)]) == 0
    assert capsys.readouterr().out == "src/lib.rs:1:8: unused Struct 'Foo'\n"


def test_directory_runs_indexer_first(tmp_path: Path, capsys, monkeypatch):
    project = tmp_path / "proj"
    project.mkdir()
    calls = []

    def fake_run_indexer(proj, output, command):
        calls.append((Path(proj), Path(output)))
        sym = "rust-analyzer cargo pkg 0.1.0 pkg/unused_fn()."
        write_index(output, index([document("src/lib.rs", [occurrence(sym, [2, 3, 12], 1)])]))
        return output

    monkeypatch.setattr(api, "run_indexer", fake_run_indexer)
    # relative to the cwd, which the autouse fixture sets to tmp_path
    assert cli.main(["proj"]) == 0
    root = project.resolve()
    assert calls == [(root, root / "target" / "index.scip")]
    assert calls[0][0].is_absolute()
    assert capsys.readouterr().out == "src/lib.rs:3:4: unused <unknown> 'unused_fn'\n"


def test_unknown_path_is_not_fatal(tmp_path: Path, capsys):
    assert cli.main([str(tmp_path / "something.txt")]) == 0
    assert "unknown extension" in capsys.readouterr().err


def test_decode_error_exits_non_zero(project, capsys):
    leaf = _write_build(project)
    (project.dump_dir / "zzz.json").write_text("[1, 2", encoding="utf-8")
    assert cli.main([str(leaf)]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("error:")


def test_bad_config_exits_non_zero(tmp_path: Path, capsys):
    (tmp_path / "deadsym.yaml").write_text("workers: 0\n", encoding="utf-8")
    assert cli.main([str(tmp_path / "x.scip")]) == 1
    assert "workers" in capsys.readouterr().err


def test_config_can_disable_macro_suppression(project, capsys, tmp_path: Path):
    leaf = _write_build(project)
    # foo sits inside a macro invocation in the real source
    lines = ["// filler"] * 9 + ["make!(foo_helper, foo);"]
    project.source("src/a.rs", "\n".join(lines) + "\n")
    assert cli.main([str(leaf)]) == 0
    assert capsys.readouterr().out == ""

    (tmp_path / "deadsym.yaml").write_text("macro_suppression: false\n", encoding="utf-8")
    assert cli.main([str(leaf)]) == 0
    assert capsys.readouterr().out == "src/a.rs:10:1: unused Function 'foo'\n"


def test_non_integer_workers_is_a_config_error(tmp_path: Path, capsys):
    (tmp_path / "deadsym.yaml").write_text("workers: [1]\n", encoding="utf-8")
    assert cli.main([str(tmp_path / "x.scip")]) == 1
    assert capsys.readouterr().err.startswith("error: workers must be an integer")
