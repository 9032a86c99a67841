from __future__ import annotations

import inspect
import json
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol, TypeAlias

from .drv import SourceLocator, load_derivations
from .errors import EvaluationError

Source: TypeAlias = Mapping[str, Any] | Callable[..., Mapping[str, Any]]


class Evaluator(Protocol):
    def function_args(self, locator: SourceLocator) -> dict[str, bool] | None: ...

    def evaluate(
        self, locator: SourceLocator, overrides: Mapping[str, Any] | None = None
    ) -> Mapping[str, Any]: ...


class StaticEvaluator:
    """Evaluator over sources already loaded in memory.

    A source is either an attribute tree or a callable returning one, in
    which case its keyword parameters play the role of the Nix function
    arguments: a parameter with a default value counts as defaulted.
    """

    def __init__(self, sources: Mapping[str | Path, Source] | None = None):
        self.sources: dict[Path, Source] = {
            Path(k).absolute(): v for k, v in (sources or {}).items()
        }

    @staticmethod
    def from_eval_jobs(locator: str | Path, lines: Iterable[str]) -> StaticEvaluator:
        items = [json.loads(line) for line in lines if line.strip()]
        return StaticEvaluator({locator: load_derivations(items)})

    def add(self, locator: str | Path, source: Source) -> None:
        self.sources[Path(locator).absolute()] = source

    def _source(self, locator: SourceLocator) -> Source:
        for p in (locator.path.absolute(), locator.entry.absolute()):
            if p in self.sources:
                return self.sources[p]
        raise EvaluationError(f"cannot evaluate '{locator}': no such source")

    def function_args(self, locator: SourceLocator) -> dict[str, bool] | None:
        source = self._source(locator)
        if not callable(source):
            return None
        args = {}
        for p in inspect.signature(source).parameters.values():
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue
            args[p.name] = p.default is not p.empty
        return args

    def evaluate(
        self, locator: SourceLocator, overrides: Mapping[str, Any] | None = None
    ) -> Mapping[str, Any]:
        source = self._source(locator)
        if not callable(source):
            return source
        try:
            return source(**(overrides or {}))
        except TypeError as e:
            raise EvaluationError(f"cannot evaluate '{locator}': {e}") from e
