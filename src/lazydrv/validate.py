"""Configuration-time checks.

Every check returns the error it found instead of raising it, so that a
whole batch can be checked before anything gets generated. `raise_first`
turns the collected list into a single exception.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .drv import AttrPath, Derivation, SourceLocator
from .errors import LazyDrvError, LocatorError, PathNotFoundError
from .evaluator import Evaluator


def check_locator(locator: SourceLocator, evaluator: Evaluator) -> LocatorError | None:
    if not locator.path.exists():
        return LocatorError(locator, f"source file '{locator}' does not exist")
    if locator.path.is_dir() and not locator.entry.exists():
        return LocatorError(locator, f"source file '{locator.entry}' does not exist")
    args = evaluator.function_args(locator)
    for name, has_default in (args or {}).items():
        if not has_default:
            return LocatorError(
                locator,
                f"function argument '{name}' in '{locator}' must have a default value",
            )
    return None


def resolve(root: Mapping[str, Any], attrpath: Iterable[str]) -> Any:
    node: Any = root
    for k in attrpath:
        if isinstance(node, Derivation):
            node = node.output(k)
        elif isinstance(node, Mapping):
            node = node[k]
        else:
            raise KeyError(k)
    return node


def check_attrpath(
    locator: SourceLocator, root: Mapping[str, Any], attrpath: AttrPath
) -> PathNotFoundError | None:
    try:
        resolve(root, attrpath)
    except KeyError:
        return PathNotFoundError(locator, attrpath)
    return None


def raise_first(errors: Sequence[LazyDrvError]) -> None:
    if not errors:
        return
    first, *rest = errors
    for e in rest:
        first.add_note(str(e))
    raise first
