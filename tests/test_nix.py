"""Tests for the nix-instantiate backed evaluator."""

import shutil

import pytest

from lazydrv import nix as nixmod
from lazydrv.drv import Derivation, Leaf, SourceLocator
from lazydrv.errors import EvaluationError, LocatorError, PathNotFoundError
from lazydrv.lazy import lazy_run
from lazydrv.nix import NixAttrs, NixEvaluator, nix_string

HAS_NIX = shutil.which("nix-instantiate") is not None


def test_nix_string():
    assert nix_string("plain") == '"plain"'
    assert nix_string('a"b') == '"a\\"b"'
    assert nix_string("a\\b") == '"a\\\\b"'
    assert nix_string("${x}") == '"\\${x}"'


TABLE = {
    (): {"kind": "set", "names": ["foo", "lib", "version"]},
    ("foo",): {"kind": "derivation", "name": "foo", "mainProgram": "foo-exe"},
    ("lib",): {"kind": "derivation", "name": "lib", "mainProgram": None},
    ("version",): {"kind": "value", "type": "string", "value": "1.0"},
}


@pytest.fixture
def fake_nix(monkeypatch):
    ev = NixEvaluator()
    monkeypatch.setattr(ev, "describe", lambda locator, path, overrides=None: TABLE.get(path))
    monkeypatch.setattr(ev, "function_args", lambda locator: {"system": True})
    return ev


def test_evaluate_is_lazy_mapping(source, fake_nix):
    root = fake_nix.evaluate(SourceLocator(source))
    assert isinstance(root, NixAttrs)
    assert list(root) == ["foo", "lib", "version"]
    assert len(root) == 3
    assert "foo" in root and "bar" not in root
    assert root["foo"] == Derivation("foo", outputs={"out": ""}, meta={"mainProgram": "foo-exe"})
    assert root["lib"].main_program is None
    assert root["version"] == "1.0"
    with pytest.raises(KeyError):
        root["bar"]


def test_evaluate_non_set_root(source, monkeypatch):
    ev = NixEvaluator()
    monkeypatch.setattr(ev, "describe", lambda locator, path, overrides=None: {"kind": "value", "value": 1})
    with pytest.raises(EvaluationError):
        ev.evaluate(SourceLocator(source))


def test_lazy_run_over_nix(source, fake_nix):
    out = lazy_run(source, {"foo": Leaf()}, fake_nix)
    assert out["foo"].name == "foo-exe"
    with pytest.raises(PathNotFoundError):
        lazy_run(source, {"bar": Leaf()}, fake_nix)


def test_describe_is_cached(source, monkeypatch):
    exprs = []

    def fake_eval(expr, extra_env=None):
        exprs.append(expr)
        return {"kind": "set", "names": []}

    monkeypatch.setattr(nixmod, "nix_eval_json", fake_eval)
    ev = NixEvaluator()
    loc = SourceLocator(source)
    ev.describe(loc, ("a", "b"))
    ev.describe(loc, ("a", "b"))
    assert len(exprs) == 1
    assert 'builtins.fromJSON "[\\"a\\", \\"b\\"]"' in exprs[0]
    assert nix_string(str(source.resolve())) in exprs[0]


def test_function_args_expression(source, monkeypatch):
    monkeypatch.setattr(nixmod, "nix_eval_json", lambda expr, extra_env=None: {"pkgs": False})
    assert NixEvaluator().function_args(SourceLocator(source)) == {"pkgs": False}


@pytest.mark.nix
@pytest.mark.skipif(not HAS_NIX, reason="nix-instantiate not found on PATH")
class TestNixInstantiate:
    NIX = """
{ greeting ? "hello" }:
{
  scripts = {
    foo = { type = "derivation"; name = "foo"; meta.mainProgram = "foo-exe"; };
    lib = { type = "derivation"; name = "lib"; };
  };
  greeting = greeting;
}
"""

    def test_tree(self, tmp_path):
        f = tmp_path / "test.nix"
        f.write_text(self.NIX)
        ev = NixEvaluator()
        loc = SourceLocator(f)
        assert ev.function_args(loc) == {"greeting": True}
        root = ev.evaluate(loc)
        assert sorted(root) == ["greeting", "scripts"]
        assert root["greeting"] == "hello"
        assert root["scripts"]["foo"].main_program == "foo-exe"
        out = lazy_run(f, {"scripts": {"foo": Leaf()}}, ev)
        assert out["scripts"]["foo"].name == "foo-exe"

    def test_required_argument(self, tmp_path):
        f = tmp_path / "test.nix"
        f.write_text("{ pkgs }: { }")
        with pytest.raises(LocatorError, match="'pkgs'"):
            lazy_run(f, {}, NixEvaluator())

    def test_evaluation_error(self, tmp_path):
        f = tmp_path / "test.nix"
        f.write_text("{ ")
        with pytest.raises(EvaluationError):
            NixEvaluator().function_args(SourceLocator(f))


def test_paths_into_derivation_outputs(source, monkeypatch):
    ev = NixEvaluator()
    table = {
        (): {"kind": "set", "names": ["hello"]},
        ("hello",): {"kind": "derivation", "name": "hello", "mainProgram": "hello", "outputs": ["out", "man"]},
    }
    monkeypatch.setattr(ev, "describe", lambda locator, path, overrides=None: table.get(path))
    out = lazy_run(source, {"hello": {"man": Leaf({"hello-man": "man"})}}, ev)
    assert "-A hello.man --no-out-link" in out["hello"]["man"]["hello-man"].command
    with pytest.raises(PathNotFoundError):
        lazy_run(source, {"hello": {"dev": Leaf()}}, ev)
