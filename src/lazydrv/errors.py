from __future__ import annotations

from collections.abc import Iterable

from .drv import join_attr_path


class LazyDrvError(Exception):
    pass


class LocatorError(LazyDrvError):
    def __init__(self, locator: object, message: str):
        self.locator = locator
        super().__init__(message)


class PathNotFoundError(LazyDrvError):
    def __init__(self, locator: object, attrpath: Iterable[str]):
        self.locator = locator
        self.attrpath = tuple(attrpath)
        super().__init__(
            f"attribute path '{join_attr_path(self.attrpath)}' does not exist in '{locator}'"
        )


class MissingExecutableNameError(LazyDrvError):
    def __init__(self, attrpath: Iterable[str], name: str):
        self.attrpath = tuple(attrpath)
        self.name = name
        super().__init__(
            f"derivation '{name}' at '{join_attr_path(self.attrpath)}' has no meta.mainProgram and no alias"
        )


class NotADerivationError(LazyDrvError):
    def __init__(self, locator: object, attrpath: Iterable[str]):
        self.locator = locator
        self.attrpath = tuple(attrpath)
        super().__init__(
            f"attribute '{join_attr_path(self.attrpath)}' in '{locator}' is not a derivation"
        )


class UnsupportedLeafError(LazyDrvError):
    def __init__(self, attrpath: Iterable[str], kind: str):
        self.attrpath = tuple(attrpath)
        super().__init__(
            f"cannot lazify {kind} at '{join_attr_path(self.attrpath)}': expected a derivation, a Leaf, a mapping of derivations or a mapping of aliases"
        )


class StubCollisionError(LazyDrvError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"more than one wrapper would be named '{name}'")


class ConfigError(LazyDrvError):
    pass


class EvaluationError(LazyDrvError):
    pass
