"""Small helpers for command-line tools."""

from __future__ import annotations

import os
import sys
from typing import NoReturn


def _program_name() -> str:
    return os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "imchat"


def out_dir(path: str | os.PathLike) -> str:
    """Return the absolute path of an existing directory with a trailing separator.

    Raises FileNotFoundError if the path does not exist and
    NotADirectoryError if it is not a directory.
    """
    absolute = os.path.abspath(path)
    if not os.path.isdir(absolute):
        os.stat(absolute)
        raise NotADirectoryError(f"output directory {absolute} is not a directory")
    return absolute + os.sep


def exit_with_error(err: BaseException | str) -> NoReturn:
    """Report the error on standard error and exit with status -1."""
    print(f"{_program_name()} exit -1: {err}\n", file=sys.stderr)
    sys.exit(-1)


def sigterm_exit() -> str:
    """Write the SIGTERM warning to standard error and return it."""
    message = f"Warning {_program_name()} receive process terminal SIGTERM exit 0\n"
    sys.stderr.write(message)
    sys.stderr.flush()
    return message