"""Run generated wrappers against a stand-in nix-build on PATH."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from lazydrv.command import nix_build_command
from lazydrv.drv import Derivation, Leaf
from lazydrv.evaluator import StaticEvaluator
from lazydrv.lazy import lazy_build
from lazydrv.wrapper import build_stub, run_stub, write_stub

pytestmark = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not found on PATH")


def write_executable(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    path.chmod(0o755)
    return path


class FakeNixBuild:
    def __init__(self, root: Path, monkeypatch: pytest.MonkeyPatch):
        self.bindir = root / "fakebin"
        self.argv_file = root / "argv"
        monkeypatch.setenv("PATH", f"{self.bindir}{os.pathsep}{os.environ['PATH']}")
        monkeypatch.setenv("ARGV_FILE", str(self.argv_file))

    def set_body(self, body: str) -> None:
        write_executable(
            self.bindir / "nix-build",
            '#!/bin/sh\nprintf \'%s\\n\' "$@" > "$ARGV_FILE"\n' + body + "\n",
        )

    def argv(self) -> list[str]:
        return self.argv_file.read_text().splitlines()


@pytest.fixture
def nix_build(tmp_path, monkeypatch):
    return FakeNixBuild(tmp_path, monkeypatch)


def run(path: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run([str(path), *args], capture_output=True, text=True)


def test_build_stub_forwards_arguments_and_status(tmp_path, nix_build):
    nix_build.set_body("exit 7")
    stub = build_stub(nix_build_command("/src", ["foo"]), "foo", ("foo",))
    result = run(write_stub(stub, tmp_path / "out"), "a b", "c")
    assert result.returncode == 7
    assert nix_build.argv() == ["/src", "-A", "foo", "a b", "c"]


def test_quoted_attribute_reaches_nix_build(tmp_path, nix_build):
    nix_build.set_body("exit 0")
    stub = build_stub(nix_build_command("/src", ["pkgs", "a.b"]), "ab", ("pkgs", "a.b"))
    result = run(write_stub(stub, tmp_path / "out"), "extra arg")
    assert result.returncode == 0
    assert nix_build.argv() == ["/src", "-A", 'pkgs."a.b"', "extra arg"]


def test_source_with_space(tmp_path, nix_build):
    nix_build.set_body("exit 0")
    source = tmp_path / "my proj" / "test.nix"
    source.parent.mkdir()
    source.write_text("{ }: { }\n")
    evaluator = StaticEvaluator({source: {"foo": Derivation("foo")}})
    out = lazy_build(source, {"foo": Leaf()}, evaluator)
    result = run(write_stub(out["foo"], tmp_path / "out"))
    assert result.returncode == 0
    assert nix_build.argv() == [str(source), "-A", "foo"]


def test_run_stub_execs_built_executable(tmp_path, nix_build, monkeypatch):
    result_dir = tmp_path / "store" / "foo"
    write_executable(result_dir / "bin" / "foo-exe", "#!/bin/sh\nprintf '%s\\n' \"$@\"\nexit 3\n")
    monkeypatch.setenv("FAKE_OUT", str(result_dir))
    nix_build.set_body('echo "$FAKE_OUT"')
    stub = run_stub("/src", ("foo",), "foo-exe")
    result = run(write_stub(stub, tmp_path / "out"), "x y", "z")
    assert result.returncode == 3
    assert result.stdout == "x y\nz\n"
    assert nix_build.argv() == ["/src", "-A", "foo", "--no-out-link"]


def test_run_stub_propagates_build_failure(tmp_path, nix_build):
    nix_build.set_body('echo "error: boom" >&2\nexit 100')
    stub = run_stub("/src", ("foo",), "foo-exe")
    result = run(write_stub(stub, tmp_path / "out"))
    assert result.returncode == 100
    assert result.stderr == "error: boom\n"
