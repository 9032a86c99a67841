from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path

from .command import BuildOptions, render, with_no_out_link
from .drv import AttrPath, SourceLocator

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/usr/bin/env bash"

SCRIPT_HEADER = """\
set -o errexit
set -o nounset
set -o pipefail
"""


@dataclass(frozen=True)
class WrapperStub:
    name: str
    text: str
    attrpath: AttrPath
    command: str
    shell: str = DEFAULT_SHELL

    def script(self) -> str:
        return f"#!{self.shell}\n{SCRIPT_HEADER}\n{self.text}\n"


def build_stub(command: str, name: str, attrpath: AttrPath, shell: str = DEFAULT_SHELL) -> WrapperStub:
    return WrapperStub(
        name=name,
        text=f'exec {command} "$@"',
        attrpath=attrpath,
        command=command,
        shell=shell,
    )


def run_stub(
    source: str | Path | SourceLocator,
    attrpath: AttrPath,
    executable: str,
    options: BuildOptions | None = None,
    name: str | None = None,
    shell: str = DEFAULT_SHELL,
) -> WrapperStub:
    options = options or BuildOptions()
    forced = BuildOptions(options.nix, with_no_out_link(options.args), options.env)
    command = render(source, attrpath, forced)
    return WrapperStub(
        name=name or executable,
        # a failed build must stop the script with nix-build's status
        text=f'out="$({command})"\nexec "$out"/bin/{shlex.quote(executable)} "$@"',
        attrpath=attrpath,
        command=command,
        shell=shell,
    )


def write_stub(stub: WrapperStub, directory: str | Path) -> Path:
    path = Path(directory) / stub.name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(stub.script())
    path.chmod(0o755)
    logger.info("wrote %s", path)
    return path
