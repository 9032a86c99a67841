"""Render the nix-build command line that realises one attribute of a source.

The output is plain text meant to be pasted into a shell script, e.g.

    NIX_PATH= nix-build /nix/store/...-source -A foo.bar --no-out-link

Environment assignments come first, then the invocation, then the extra
flags. The source and the attribute selector are shell-quoted, so the
line survives being run by a shell; flags and environment values are
spliced in verbatim.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeAlias

from .drv import Derivation, SourceLocator, join_attr_path

NO_OUT_LINK = "--no-out-link"

NixTool: TypeAlias = str | Path | Derivation | None


@dataclass(frozen=True)
class BuildOptions:
    nix: NixTool = None
    args: tuple[str, ...] = ()
    env: Mapping[str, Any] = field(default_factory=dict)


def to_string(v: Any) -> str:
    # same coercion as Nix `toString`
    if v is None or v is False:
        return ""
    if v is True:
        return "1"
    if isinstance(v, (list, tuple)):
        return " ".join(to_string(i) for i in v)
    return str(v)


def nix_prefix(nix: NixTool) -> str:
    if nix is None:
        return ""
    if isinstance(nix, Derivation):
        if nix.out_path is None:
            raise ValueError(f"nix package '{nix.name}' has no 'out' output")
        return f"{nix.out_path}/bin/"
    return f"{nix}/bin/"


def nix_build_command(
    source: str | Path | SourceLocator,
    attrpath: Iterable[str],
    nix: NixTool = None,
    args: Sequence[str] = (),
    env: Mapping[str, Any] | None = None,
) -> str:
    env = env or {}
    segments = [
        " ".join(f"{k}={to_string(v)}" for k, v in env.items()),
        f"{nix_prefix(nix)}nix-build {shlex.quote(str(source))}"
        f" -A {shlex.quote(join_attr_path(attrpath))}",
        " ".join(args),
    ]
    return " ".join(s for s in segments if s != "")


def with_no_out_link(args: Sequence[str]) -> tuple[str, ...]:
    if NO_OUT_LINK in args:
        return tuple(args)
    return (*args, NO_OUT_LINK)


def render(source: str | Path | SourceLocator, attrpath: Iterable[str], options: BuildOptions) -> str:
    return nix_build_command(source, attrpath, options.nix, options.args, options.env)
