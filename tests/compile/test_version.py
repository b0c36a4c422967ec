import subprocess
import sys

import pytest

from sitter_bundle.build import version as version_module
from sitter_bundle.build.descriptor import resolve_component
from sitter_bundle.build.errors import VersionError
from sitter_bundle.build.version import resolve_version


class _FakeRun:
    def __init__(self, stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.calls = []

    def __call__(self, argv, **kwargs):
        self.calls.append((argv, kwargs))
        return subprocess.CompletedProcess(argv, self.returncode, self.stdout, self.stderr)


def test_version_file_is_trimmed(grammars):
    grammars.add("rust", version="  0.21.2 \n")
    assert resolve_version(grammars.root / "rust", grammars.root.parent) == "0.21.2"


def test_git_fallback(grammars, monkeypatch: pytest.MonkeyPatch):
    grammars.add("rust", version=None)
    fake = _FakeRun(stdout="3f4e5d6c\n")
    monkeypatch.setattr(version_module.subprocess, "run", fake)

    project_root = grammars.root.parent
    assert resolve_version(grammars.root / "rust", project_root) == "3f4e5d6c"

    (argv, kwargs) = fake.calls[0]
    assert argv == ["git", "rev-parse", "HEAD:./grammars/rust"]
    assert kwargs["cwd"] == project_root


def test_git_failure_is_fatal_and_verbatim(grammars, monkeypatch: pytest.MonkeyPatch):
    grammars.add("rust", version=None)
    stderr = "fatal: not a git repository (or any of the parent directories): .git\n"
    monkeypatch.setattr(version_module.subprocess, "run", _FakeRun(stderr=stderr, returncode=128))

    with pytest.raises(VersionError) as exc_info:
        resolve_version(grammars.root / "rust", grammars.root.parent)
    assert str(exc_info.value) == stderr


def test_git_missing_is_fatal(grammars, monkeypatch: pytest.MonkeyPatch):
    grammars.add("rust", version=None)

    def _missing(argv, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr(version_module.subprocess, "run", _missing)
    with pytest.raises(VersionError):
        resolve_version(grammars.root / "rust", grammars.root.parent)


def test_empty_git_output_is_fatal(grammars, monkeypatch: pytest.MonkeyPatch):
    grammars.add("rust", version=None)
    monkeypatch.setattr(version_module.subprocess, "run", _FakeRun(stdout="\n"))
    with pytest.raises(VersionError):
        resolve_version(grammars.root / "rust", grammars.root.parent)


def test_descriptor_version_is_memoized(grammars, monkeypatch: pytest.MonkeyPatch):
    grammars.add("rust", version=None)
    fake = _FakeRun(stdout="abc123\n")
    monkeypatch.setattr(version_module.subprocess, "run", fake)

    d = resolve_component("rust", grammars.root, project_root=grammars.root.parent)
    assert d.version == "abc123"
    assert d.version == "abc123"
    assert len(fake.calls) == 1


def test_version_file_read_once(grammars):
    grammars.add("rust", version="1.0.0")
    d = resolve_component("rust", grammars.root)
    assert d.version == "1.0.0"
    (d.root_path / "treesitter-language-version").write_text("2.0.0\n")
    assert d.version == "1.0.0"


if __name__ == "__main__":
    pytest.main(sys.argv)
