from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from functools import singledispatch
from typing import Any

import yaml

from .drv import Derivation, Leaf, join_attr_path
from .wrapper import WrapperStub


class ManifestDumper(yaml.SafeDumper):
    pass


def string_presenter(dumper: yaml.Dumper, data: str) -> Any:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


ManifestDumper.add_representer(str, string_presenter)


def serialize_base(x: Any, skip: list[str] | None = None) -> Any:
    if isinstance(x, (list, tuple)):
        return [serialize(i) for i in x]
    if isinstance(x, Mapping):
        return {k: serialize(v) for (k, v) in x.items()}
    if not is_dataclass(x) or isinstance(x, type):
        return x
    ret = {}
    for f in fields(x):
        if skip is not None and f.name in skip:
            continue
        v = getattr(x, f.name)
        if v is None:
            continue
        ret[f.name] = serialize(v)
    return ret


@singledispatch
def serialize(x: Any, skip: list[str] | None = None) -> Any:
    return serialize_base(x, skip)


@serialize.register
def _(x: WrapperStub) -> dict[str, Any]:
    return {
        "name": x.name,
        "attrpath": join_attr_path(x.attrpath),
        "command": x.command,
        "script": x.script(),
    }


@serialize.register
def _(x: Derivation) -> dict[str, Any]:
    return serialize_base(x, skip=["outputs"] if not x.outputs else None)


@serialize.register
def _(x: Leaf) -> dict[str, Any]:
    return {"aliases": dict(x.aliases)}


def dump_yaml(output: Any) -> str:
    return yaml.dump(serialize(output), Dumper=ManifestDumper, sort_keys=False)


def dump_json(output: Any) -> str:
    return json.dumps(serialize(output), indent=2)
