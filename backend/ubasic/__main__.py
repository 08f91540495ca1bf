"""Command-line entry point: `python -m backend.ubasic [file ...]`.

Runs each named file as a batch program, or starts the REPL on stdin when no
file is given. Errors are reported as `ubasic: <error>` on stderr; the exit
status is 1 if anything failed.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .interpreter import run
from .machine import MemoryMachine
from .repl import repl


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="ubasic", description="Run uBASIC programs, or start a REPL with no arguments.")
    p.add_argument("files", nargs="*", help="program files to run in order")
    p.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )

    status = 0

    def report(err: Exception) -> None:
        nonlocal status
        print(f"ubasic: {err}", file=sys.stderr)
        status = 1

    if not args.files:
        repl(MemoryMachine(), sys.stdin)
        return status

    for name in args.files:
        try:
            src = Path(name).read_bytes()
        except OSError as e:
            report(e)
            continue
        err = run(MemoryMachine(), name, src)
        if err is not None:
            report(err)
    return status


if __name__ == "__main__":
    sys.exit(main())
