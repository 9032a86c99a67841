"""Replace the derivations of an attribute tree with lazy wrapper scripts.

    lazy_run(
        source="./test.nix",
        attrs={"scripts": {"foo": Leaf({"foo-alias": "foo-executable"})}},
        evaluator=NixEvaluator(),
    )

returns `{"scripts": {"foo": {"foo-alias": WrapperStub(...)}}}`. The stub runs
`nix-build /abs/path/to/test.nix -A scripts.foo --no-out-link` and execs
`bin/foo-executable` from the result. Relative sources are made absolute
first.

The whole tree is checked before any stub is made: one missing attribute
path or executable name fails the call, valid siblings included.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

from .command import BuildOptions, render
from .drv import AttrPath, Derivation, Leaf, SourceLocator, is_derivation, is_leaf
from .errors import (
    LazyDrvError,
    MissingExecutableNameError,
    NotADerivationError,
    StubCollisionError,
    UnsupportedLeafError,
)
from .evaluator import Evaluator
from .tree import leaf_paths, map_attrs_recursive_cond
from .validate import check_attrpath, check_locator, raise_first, resolve
from .wrapper import WrapperStub, build_stub, run_stub, write_stub

logger = logging.getLogger(__name__)

Emit: TypeAlias = Callable[[SourceLocator, AttrPath, Derivation, Mapping[str, str], BuildOptions], Any]


@dataclass(frozen=True)
class Lazifier:
    emit: Emit
    needs_main_program: bool = False


def emit_build(
    source: SourceLocator,
    attrpath: AttrPath,
    drv: Derivation,
    aliases: Mapping[str, str],
    options: BuildOptions,
) -> WrapperStub | dict[str, WrapperStub]:
    command = render(source, attrpath, options)
    if not aliases:
        return build_stub(command, drv.name, attrpath)
    return {alias: build_stub(command, alias, attrpath) for alias in aliases}


def emit_run(
    source: SourceLocator,
    attrpath: AttrPath,
    drv: Derivation,
    aliases: Mapping[str, str],
    options: BuildOptions,
) -> WrapperStub | dict[str, WrapperStub]:
    if not aliases:
        if drv.main_program is None:
            raise MissingExecutableNameError(attrpath, drv.name)
        return run_stub(source, attrpath, drv.main_program, options)
    return {
        alias: run_stub(source, attrpath, exe, options, name=alias)
        for alias, exe in aliases.items()
    }


build = Lazifier(emit_build)
run = Lazifier(emit_run, needs_main_program=True)


def _members(attrpath: AttrPath, value: Any) -> list[tuple[AttrPath, Derivation | None, Mapping[str, str]]]:
    if isinstance(value, Derivation):
        return [(attrpath, value, {})]
    if isinstance(value, Leaf):
        return [(attrpath, None, value.aliases)]
    if isinstance(value, Mapping) and all(is_derivation(v) for v in value.values()):
        return [((*attrpath, k), v, {}) for k, v in value.items()]
    if isinstance(value, Mapping) and all(isinstance(v, str) for v in value.values()):
        return [(attrpath, None, value)]
    raise UnsupportedLeafError(attrpath, type(value).__name__)


def lazify(
    lazifier: Lazifier,
    source: str | Path | SourceLocator,
    attrs: Mapping[str, Any],
    evaluator: Evaluator,
    options: BuildOptions | None = None,
    pred: Callable[[Any], bool] = is_leaf,
) -> dict[str, Any]:
    # stubs must not depend on the directory they are run from
    locator = SourceLocator.of(source).absolute()
    options = options or BuildOptions()

    error = check_locator(locator, evaluator)
    if error is not None:
        raise error
    root = evaluator.evaluate(locator)

    resolved: dict[AttrPath, tuple[Derivation, Mapping[str, str]]] = {}
    errors: list[LazyDrvError] = []
    for leafpath, value in leaf_paths(attrs, pred):
        try:
            members = _members(leafpath, value)
        except UnsupportedLeafError as e:
            errors.append(e)
            continue
        for attrpath, drv, aliases in members:
            missing = check_attrpath(locator, root, attrpath)
            if missing is not None:
                errors.append(missing)
                continue
            if drv is None:
                drv = resolve(root, attrpath)
                if not is_derivation(drv):
                    errors.append(NotADerivationError(locator, attrpath))
                    continue
            if lazifier.needs_main_program and not aliases and drv.main_program is None:
                errors.append(MissingExecutableNameError(attrpath, drv.name))
                continue
            resolved[attrpath] = (drv, aliases)
    raise_first(errors)

    def emit(attrpath: AttrPath, value: Any) -> Any:
        members = _members(attrpath, value)
        if members and members[0][0] == attrpath:
            drv, aliases = resolved[attrpath]
            logger.debug("lazifying %s", ".".join(attrpath))
            return lazifier.emit(locator, attrpath, drv, aliases, options)
        ret = {}
        for p, _, _ in members:
            drv, aliases = resolved[p]
            logger.debug("lazifying %s", ".".join(p))
            ret[p[-1]] = lazifier.emit(locator, p, drv, aliases, options)
        return ret

    return map_attrs_recursive_cond(attrs, pred, emit)


def lazy_build(
    source: str | Path | SourceLocator,
    attrs: Mapping[str, Any],
    evaluator: Evaluator,
    options: BuildOptions | None = None,
    pred: Callable[[Any], bool] = is_leaf,
) -> dict[str, Any]:
    return lazify(build, source, attrs, evaluator, options, pred)


def lazy_run(
    source: str | Path | SourceLocator,
    attrs: Mapping[str, Any],
    evaluator: Evaluator,
    options: BuildOptions | None = None,
    pred: Callable[[Any], bool] = is_leaf,
) -> dict[str, Any]:
    return lazify(run, source, attrs, evaluator, options, pred)


def stubs(output: Any) -> Iterator[WrapperStub]:
    if isinstance(output, WrapperStub):
        yield output
    elif isinstance(output, Mapping):
        for v in output.values():
            yield from stubs(v)


def write_bin(output: Mapping[str, Any], directory: str | Path) -> list[Path]:
    found = list(stubs(output))
    seen: set[str] = set()
    for s in found:
        if s.name in seen:
            raise StubCollisionError(s.name)
        seen.add(s.name)
    bindir = Path(directory) / "bin"
    return [write_stub(s, bindir) for s in found]
