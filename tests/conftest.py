from pathlib import Path

import pytest

from lazydrv.drv import Derivation
from lazydrv.evaluator import StaticEvaluator


def scripts_tree() -> dict:
    return {
        "foo": Derivation("foo", meta={"mainProgram": "foo-exe"}),
        "scripts": {
            "foo": Derivation("foo-executable", meta={"mainProgram": "foo-executable"}),
            "bar": Derivation("bar-executable", meta={"mainProgram": "bar-executable"}),
        },
        "lib": Derivation("lib"),
        "version": "1.0",
    }


@pytest.fixture
def source(tmp_path: Path) -> Path:
    p = tmp_path / "test.nix"
    p.write_text("{ }: { }\n")
    return p


@pytest.fixture
def evaluator(source: Path) -> StaticEvaluator:
    return StaticEvaluator({source: scripts_tree()})
