"""lazydrv.yaml loading.

    source: ./test.nix
    mode: run
    nix-build-env: {NIX_PATH: ""}
    attrs:
      scripts:
        foo: {foo-alias: foo-executable}
        bar: true

`true` marks a leaf that uses the derivation's own executable, a mapping of
strings marks a leaf with aliases, any other mapping is descended into.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

from .command import BuildOptions
from .drv import Leaf, SourceLocator
from .errors import ConfigError

DEFAULT_CONFIG = "lazydrv.yaml"

KEYS = {"source", "mode", "nix", "nix-build-args", "nix-build-env", "out", "attrs"}


@dataclass
class Config:
    source: SourceLocator
    attrs: dict[str, Any]
    mode: Literal["run", "build"] = "run"
    options: BuildOptions = field(default_factory=BuildOptions)
    out: Path = Path("result-lazy")


def parse_attrs(data: Any, path: tuple[str, ...] = ()) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ConfigError(f"'{'.'.join(path) or 'attrs'}' must be a mapping")
    ret: dict[str, Any] = {}
    for k, v in data.items():
        p = (*path, str(k))
        if v is True:
            ret[str(k)] = Leaf()
        elif isinstance(v, dict) and v and all(isinstance(i, str) for i in v.values()):
            ret[str(k)] = Leaf({str(a): e for a, e in v.items()})
        elif isinstance(v, dict):
            ret[str(k)] = parse_attrs(v, p)
        else:
            raise ConfigError(f"'{'.'.join(p)}' must be true, a mapping of aliases or a nested mapping")
    return ret


def from_dict(data: Any, base: Path) -> Config:
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a mapping")
    unknown = set(data) - KEYS
    if unknown:
        raise ConfigError(f"unknown configuration key '{sorted(unknown)[0]}'")
    if "source" not in data:
        raise ConfigError("missing configuration key 'source'")
    mode = data.get("mode", "run")
    if mode not in ("run", "build"):
        raise ConfigError(f"'mode' must be 'run' or 'build', not '{mode}'")
    args = data.get("nix-build-args") or []
    if not isinstance(args, list):
        raise ConfigError("'nix-build-args' must be a list")
    env = data.get("nix-build-env") or {}
    if not isinstance(env, dict):
        raise ConfigError("'nix-build-env' must be a mapping")
    nix = data.get("nix")
    return Config(
        source=SourceLocator(base / str(data["source"])).absolute(),
        attrs=parse_attrs(data.get("attrs") or {}),
        mode=mode,
        options=BuildOptions(
            nix=None if nix is None else str(nix),
            args=tuple(str(a) for a in args),
            env={str(k): v for k, v in env.items()},
        ),
        out=base / str(data.get("out", "result-lazy")),
    )


def load_config(path: str | Path) -> Config:
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"configuration file '{path}' does not exist") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse '{path}': {e}") from e
    return from_dict(data, path.parent.absolute())
