from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .command import nix_build_command
from .config import DEFAULT_CONFIG, load_config
from .drv import parse_attr_path
from .errors import LazyDrvError
from .evaluator import Evaluator
from .lazy import lazy_build, lazy_run, stubs, write_bin
from .manifest import dump_yaml
from .nix import NixEvaluator

logger = logging.getLogger("lazydrv")


def env_pair(s: str) -> tuple[str, str]:
    if "=" not in s:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got '{s}'")
    k, v = s.split("=", 1)
    return k, v


def cmd_command(args: argparse.Namespace, evaluator: Evaluator | None) -> None:
    print(
        nix_build_command(
            args.source,
            parse_attr_path(args.attrpath),
            nix=args.nix,
            args=args.arg,
            env=dict(args.env),
        )
    )


def cmd_generate(args: argparse.Namespace, evaluator: Evaluator | None) -> None:
    config = load_config(args.config)
    lazify = lazy_run if config.mode == "run" else lazy_build
    output = lazify(config.source, config.attrs, evaluator or NixEvaluator(), config.options)
    if args.dry_run:
        print(dump_yaml(output), end="")
        return
    out = Path(args.out) if args.out else config.out
    written = write_bin(output, out)
    logger.info("wrote %d wrappers to %s", len(written), out / "bin")
    for s in stubs(output):
        print(s.name)


def parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lazydrv", description="Lazy wrappers for Nix derivations")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("command", help="print the nix-build command for an attribute")
    c.add_argument("source")
    c.add_argument("attrpath", help="dotted attribute path, e.g. foo.bar")
    c.add_argument("--nix", help="nix package providing bin/nix-build")
    c.add_argument("--arg", action="append", default=[], help="extra nix-build flag")
    c.add_argument("--env", action="append", default=[], type=env_pair, metavar="KEY=VALUE")
    c.set_defaults(fn=cmd_command)

    g = sub.add_parser("generate", help="write wrapper scripts described by a config file")
    g.add_argument("-c", "--config", default=DEFAULT_CONFIG)
    g.add_argument("--out", help="output directory, overrides 'out' in the config")
    g.add_argument("--dry-run", action="store_true", help="print the manifest instead of writing")
    g.set_defaults(fn=cmd_generate)
    return p


def main(argv: list[str] | None = None, evaluator: Evaluator | None = None) -> int:
    args = parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    try:
        args.fn(args, evaluator)
    except LazyDrvError as e:
        print(f"lazydrv: {e}", file=sys.stderr)
        for note in getattr(e, "__notes__", []):
            print(f"lazydrv: {note}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
