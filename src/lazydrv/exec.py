import json
import logging
import os
from typing import Any

import sh as _sh  # type: ignore

from .errors import EvaluationError

logger = logging.getLogger(__name__)

env = os.environ.copy()

sh = _sh.bake(_tty_out=False)


def nix_eval_json(expr: str, extra_env: dict[str, str] | None = None) -> Any:
    logger.debug("nix-instantiate --eval --expr %s", expr)
    try:
        out = sh.nix_instantiate(
            _long_sep=None,
            _env={**env, **(extra_env or {})},
            eval=True,
            strict=True,
            json=True,
            expr=expr,
        )
    except _sh.CommandNotFound as e:
        raise EvaluationError("nix-instantiate not found on PATH") from e
    except _sh.ErrorReturnCode as e:
        raise EvaluationError(e.stderr.decode(errors="replace").strip()) from e
    return json.loads(str(out))
