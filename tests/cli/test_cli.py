import json
import logging
import sys
from pathlib import Path

import pytest

from sitter_bundle.build import orchestrator
from sitter_bundle.cli import cli


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("sitter_bundle")
    for handler in [h for h in logger.handlers if getattr(h, "_sitter_bundle", False)]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_builder_toolchain(monkeypatch: pytest.MonkeyPatch, toolchain_factory):
    """Make every BundleBuilder created by the CLI use a recording fake toolchain."""
    created = []

    def factory():
        toolchain = toolchain_factory()
        created.append(toolchain)
        return toolchain

    monkeypatch.setattr(orchestrator, "Toolchain", factory)
    return created


def _common(grammars, tmp_path: Path):
    return [
        "--grammars-dir",
        str(grammars.root),
        "--out-dir",
        str(tmp_path / "bindings"),
        "--build-dir",
        str(tmp_path / "build"),
        "--project-root",
        str(tmp_path),
        "--log-level",
        "WARNING",
    ]


def test_list(grammars, tmp_path: Path, capsys):
    grammars.add("rust", version="0.21.0", artifacts={"queries/highlights.scm": "(x) @y\n"})
    grammars.add("typescript", "tsx", version="0.20.1")

    code = cli(
        ["list", *_common(grammars, tmp_path), "--component", "rust", "--component", "typescript_tsx"]
    )
    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["rust", "rust", "0.21.0", "[highlights]"]
    assert lines[1].split() == ["tsx", "typescript", "0.20.1", "[-]"]


def test_list_nothing(grammars, tmp_path: Path, capsys):
    assert cli(["list", *_common(grammars, tmp_path)]) == 0
    assert "No grammars resolved." in capsys.readouterr().out


def test_build(grammars, tmp_path: Path, capsys, fake_builder_toolchain):
    grammars.add("rust")
    code = cli(["build", *_common(grammars, tmp_path), "--component", "rust", "--highlight"])

    assert code == 0
    out = capsys.readouterr().out
    assert "rust" in out
    assert "Bundle library:" in out
    module = (tmp_path / "bindings" / "lang_rust.py").read_text()
    assert "def highlight()" in module
    (toolchain,) = fake_builder_toolchain
    assert any("-shared" in call for call in toolchain.calls)


def test_build_from_config_file(grammars, tmp_path: Path, capsys, fake_builder_toolchain):
    grammars.add("c")
    config = tmp_path / "bundle.json"
    config.write_text(json.dumps({"components": {"c": True}, "highlight": False}))

    code = cli(["build", *_common(grammars, tmp_path), "--config", str(config)])
    assert code == 0
    assert (tmp_path / "bindings" / "lang_c.py").is_file()


def test_build_from_env(grammars, tmp_path: Path, monkeypatch, capsys, fake_builder_toolchain):
    grammars.add("go")
    monkeypatch.setenv("SITTER_BUNDLE_FEATURE_GO", "1")
    assert cli(["build", *_common(grammars, tmp_path), "--from-env"]) == 0
    assert (tmp_path / "bindings" / "lang_go.py").is_file()


def test_strict_build_fails(grammars, tmp_path: Path, capsys, fake_builder_toolchain):
    code = cli(["build", *_common(grammars, tmp_path), "--component", "cobol", "--strict"])
    assert code == 1
    assert "No grammar sources found for: cobol" in capsys.readouterr().err


def test_build_reports_toolchain_output(
    grammars, tmp_path: Path, monkeypatch, capsys, toolchain_factory
):
    grammars.add("markdown", scanner_cc=True)
    monkeypatch.setattr(
        orchestrator, "Toolchain", lambda: toolchain_factory(fail_on="scanner.cc")
    )

    code = cli(["build", *_common(grammars, tmp_path), "--component", "markdown"])
    assert code == 1
    assert capsys.readouterr().err == "scanner.cc: error: expected ';'\n"


def test_build_rejects_undecodable_artifact(
    grammars, tmp_path: Path, capsys, fake_builder_toolchain
):
    src = grammars.add("rust")
    (src / "node-types.json").write_bytes(b"[\xff]\n")

    code = cli(["build", *_common(grammars, tmp_path), "--component", "rust"])
    assert code == 1
    err = capsys.readouterr().err
    assert f"{src / 'node-types.json'} is not valid UTF-8" in err
    assert "Traceback" not in err


def test_selftest(grammars, tmp_path: Path, capsys):
    out_dir = tmp_path / "bindings"
    out_dir.mkdir()
    (out_dir / "lang_rust.py").write_text("def test_ok():\n    pass\n")
    code = cli(["selftest", *_common(grammars, tmp_path), "--component", "rust"])
    assert code == 0
    assert "rust: 1 passed" in capsys.readouterr().out


def test_missing_command():
    with pytest.raises(SystemExit):
        cli([])


if __name__ == "__main__":
    pytest.main(sys.argv)
