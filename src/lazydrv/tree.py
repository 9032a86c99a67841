from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from .drv import AttrPath


def map_attrs_recursive_cond(
    tree: Mapping[str, Any],
    pred: Callable[[Any], bool],
    f: Callable[[AttrPath, Any], Any],
    path: AttrPath = (),
) -> dict[str, Any]:
    """Return a copy of `tree` with every node accepted by `pred` replaced by `f(attrpath, node)`.

    Recursion stops at accepted nodes. Other mappings are descended into,
    anything else is passed through as is.
    """
    ret = {}
    for k, v in tree.items():
        p = (*path, k)
        if pred(v):
            ret[k] = f(p, v)
        elif isinstance(v, Mapping):
            ret[k] = map_attrs_recursive_cond(v, pred, f, p)
        else:
            ret[k] = v
    return ret


def leaf_paths(
    tree: Mapping[str, Any], pred: Callable[[Any], bool], path: AttrPath = ()
) -> list[tuple[AttrPath, Any]]:
    found = []
    for k, v in tree.items():
        p = (*path, k)
        if pred(v):
            found.append((p, v))
        elif isinstance(v, Mapping):
            found += leaf_paths(v, pred, p)
    return found
