"""Evaluate Nix sources with nix-instantiate.

Only the shape of the tree is ever asked for: attribute names, whether a
node is a derivation, and a derivation's name, outputs and meta.mainProgram. Nothing
gets instantiated or built.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from typing import Any

from .drv import AttrPath, Derivation, SourceLocator
from .errors import EvaluationError
from .exec import nix_eval_json

FUNCTION_ARGS_EXPR = """
let f = import %(source)s;
in if builtins.isFunction f then builtins.functionArgs f else null
"""

DESCRIBE_EXPR = """
let
  f = import %(source)s;
  root = if builtins.isFunction f then f (builtins.fromJSON %(args)s) else f;
  get = path: v:
    if path == [ ] then { found = true; value = v; }
    else if builtins.isAttrs v && builtins.hasAttr (builtins.head path) v
    then get (builtins.tail path) (builtins.getAttr (builtins.head path) v)
    else { found = false; };
  r = get (builtins.fromJSON %(path)s) root;
  v = r.value;
  t = builtins.typeOf v;
in
  if !r.found then null
  else if builtins.isAttrs v && (v.type or null) == "derivation" then {
    kind = "derivation";
    name = v.name or null;
    mainProgram = v.meta.mainProgram or null;
    outputs = v.outputs or [ "out" ];
  }
  else if builtins.isAttrs v then { kind = "set"; names = builtins.attrNames v; }
  else {
    kind = "value";
    type = t;
    value =
      if t == "path" then toString v
      else if builtins.elem t [ "string" "int" "float" "bool" "null" ] then v
      else null;
  }
"""


def nix_string(s: str) -> str:
    escaped = s.replace("\\", "\\\\").replace('"', '\\"').replace("${", "\\${")
    return f'"{escaped}"'


class NixAttrs(Mapping[str, Any]):
    """Lazy view of an attribute set inside an evaluated source."""

    def __init__(
        self,
        evaluator: NixEvaluator,
        locator: SourceLocator,
        overrides: Mapping[str, Any],
        path: AttrPath,
        names: list[str],
    ):
        self.evaluator = evaluator
        self.locator = locator
        self.overrides = overrides
        self.path = path
        self._names = names

    def __getitem__(self, key: str) -> Any:
        if key not in self._names:
            raise KeyError(key)
        found, value = self.evaluator.node(self.locator, (*self.path, key), self.overrides)
        if not found:
            raise KeyError(key)
        return value

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, key: object) -> bool:
        return key in self._names

    def __repr__(self) -> str:
        return f"NixAttrs({self.locator}, {'.'.join(self.path) or '<root>'})"


class NixEvaluator:
    def __init__(self, extra_env: dict[str, str] | None = None):
        self.extra_env = extra_env or {}
        self._cache: dict[tuple[str, str, AttrPath], Any] = {}

    def _source(self, locator: SourceLocator) -> str:
        return nix_string(str(locator.path.resolve()))

    def function_args(self, locator: SourceLocator) -> dict[str, bool] | None:
        expr = FUNCTION_ARGS_EXPR % {"source": self._source(locator)}
        return nix_eval_json(expr, self.extra_env)

    def describe(
        self, locator: SourceLocator, path: AttrPath, overrides: Mapping[str, Any] | None = None
    ) -> dict[str, Any] | None:
        args = json.dumps(dict(overrides or {}), sort_keys=True)
        key = (str(locator), args, path)
        if key not in self._cache:
            expr = DESCRIBE_EXPR % {
                "source": self._source(locator),
                "args": nix_string(args),
                "path": nix_string(json.dumps(list(path))),
            }
            self._cache[key] = nix_eval_json(expr, self.extra_env)
        return self._cache[key]

    def node(
        self, locator: SourceLocator, path: AttrPath, overrides: Mapping[str, Any] | None = None
    ) -> tuple[bool, Any]:
        d = self.describe(locator, path, overrides)
        if d is None:
            return False, None
        match d["kind"]:
            case "derivation":
                meta = {}
                if d["mainProgram"] is not None:
                    meta["mainProgram"] = d["mainProgram"]
                outputs = {o: "" for o in d.get("outputs") or ["out"]}
                return True, Derivation(name=d["name"] or path[-1], outputs=outputs, meta=meta)
            case "set":
                return True, NixAttrs(self, locator, overrides or {}, path, d["names"])
            case _:
                return True, d["value"]

    def evaluate(
        self, locator: SourceLocator, overrides: Mapping[str, Any] | None = None
    ) -> Mapping[str, Any]:
        _, root = self.node(locator, (), overrides)
        if not isinstance(root, Mapping):
            raise EvaluationError(f"expression in '{locator}' does not evaluate to an attribute set")
        return root
