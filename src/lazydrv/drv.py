from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeAlias

AttrPath: TypeAlias = tuple[str, ...]

ATTR_NAME = re.compile(r"""^([a-zA-Z_][a-zA-Z0-9_'-]*|"[^"]*")$""")
IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_'-]*$")


@dataclass(frozen=True)
class SourceLocator:
    path: Path

    @staticmethod
    def of(path: str | Path | SourceLocator) -> SourceLocator:
        if isinstance(path, SourceLocator):
            return path
        return SourceLocator(Path(path))

    def absolute(self) -> SourceLocator:
        return SourceLocator(self.path.absolute())

    @property
    def entry(self) -> Path:
        if self.path.is_dir():
            return self.path / "default.nix"
        return self.path

    def __str__(self) -> str:
        return str(self.path)


@dataclass
class Derivation:
    name: str
    drv: str | None = None
    outputs: dict[str, str] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def main_program(self) -> str | None:
        return self.meta.get("mainProgram")

    @property
    def out_path(self) -> str | None:
        return self.outputs.get("out") or None

    def output(self, name: str) -> Derivation:
        # a derivation with no recorded outputs still has "out"
        outputs = self.outputs or {"out": ""}
        if name not in outputs:
            raise KeyError(name)
        return Derivation(self.name, self.drv, {name: outputs[name]}, self.meta)


@dataclass(frozen=True)
class Leaf:
    aliases: Mapping[str, str] = field(default_factory=dict)


def is_derivation(value: Any) -> bool:
    return isinstance(value, Derivation)


def is_leaf(value: Any) -> bool:
    if isinstance(value, (Derivation, Leaf)):
        return True
    if isinstance(value, Mapping) and value:
        return all(is_derivation(v) for v in value.values())
    return False


def quote_attr(name: str) -> str:
    if IDENTIFIER.match(name):
        return name
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'


def join_attr_path(path: Iterable[str]) -> str:
    return ".".join(quote_attr(p) for p in path)


def parse_attr_path(s: str) -> AttrPath:
    res = []
    cur = ""
    quoted = False
    i = 0
    while i < len(s):
        if s[i] == ".":
            res.append(cur)
            cur = ""
            quoted = False
        elif s[i] == '"':
            i += 1
            while True:
                if i >= len(s):
                    raise ValueError(f"missing closing quote in attribute path '{s}'")
                if s[i] == '"':
                    break
                cur += s[i]
                i += 1
            quoted = True
        else:
            cur += s[i]
        i += 1
    if cur or quoted:
        res.append(cur)
    return tuple(res)


def is_attr_name(s: str) -> bool:
    return ATTR_NAME.match(s) is not None


def is_attr_path_string(s: str) -> bool:
    return all(is_attr_name(p) for p in s.split("."))


def is_attr_path_list(path: Iterable[str]) -> bool:
    return all(is_attr_name(p) for p in path)


def load_derivations(items: list[Any]) -> dict[str, Any]:
    """Nest nix-eval-jobs records into an attribute tree of derivations."""
    tree: dict[str, Any] = {}
    for i in items:
        path = parse_attr_path(i["attr"])
        if not path:
            raise ValueError("nix-eval-jobs record without an attribute path")
        drv = Derivation(
            name=i.get("name", path[-1]),
            drv=i.get("drvPath"),
            outputs=i.get("outputs", {}),
            meta=i.get("meta") or {},
        )
        node = tree
        for k in path[:-1]:
            node = node.setdefault(k, {})
        node[path[-1]] = drv
    return tree
