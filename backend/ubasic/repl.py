"""Interactive line-by-line driver.

Each entered line is parsed as one statement and stored in a persistent
program, replacing any earlier line with the same label. GOTO and GOSUB
start a run from the entered line; NEXT and END are only stored; every other
statement also executes immediately. `p` lists the stored program and `q`
ends the session. Errors are reported and the session carries on.
"""

import logging
import sys
from typing import Optional, TextIO

from .errors import UBasicError
from .interpreter import Interpreter
from .machine import Machine
from .nodes import EndStmt, GosubStmt, GotoStmt, NextStmt
from .parser import Parser
from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)

PROMPT = "> "
LIST_COMMANDS = ("p", "list")
QUIT_COMMANDS = ("q", "quit")


class Repl:
    """REPL session state: one tokenizer/parser pair and one interpreter.

    Args:
        machine: capability used for PRINT/PEEK/POKE and for the prompt.
        err: stream errors are reported on; defaults to sys.stderr.
    """

    def __init__(self, machine: Machine, err: Optional[TextIO] = None):
        self.machine = machine
        self.err = err
        self.tokenizer = Tokenizer()
        self.parser = Parser(self.tokenizer)
        self.interp = Interpreter(machine)

    def _report(self, e: Exception) -> None:
        err = self.err if self.err is not None else sys.stderr
        print(e, file=err)

    def listing(self) -> str:
        return "".join(f"{stmt}\n" for stmt in self.interp.lines)

    def feed(self, line: str) -> bool:
        """Process one input line; returns False when the session should end."""
        line = line.strip()
        if not line:
            return True
        if line in LIST_COMMANDS:
            self.machine.write(self.listing())
            return True
        if line in QUIT_COMMANDS:
            return False

        self.tokenizer.init(line)
        self.parser.reset()
        try:
            stmt = self.parser.line()
        except UBasicError as e:
            self._report(e)
            return True
        if stmt is None:
            return True

        idx = self.interp.add_line(stmt)
        try:
            if isinstance(stmt, (GotoStmt, GosubStmt)):
                self.run_from_current()
            elif not isinstance(stmt, (NextStmt, EndStmt)):
                # same counter as a stepped statement, so FOR loops back past itself
                self.interp.pc = idx + 1
                self.interp.eval(stmt)
        except UBasicError as e:
            self._report(e)
        return True

    def run_from_current(self) -> int:
        """Run the stored program from the program counter until it halts."""
        self.interp.halt = False
        steps = self.interp.run_to_halt()
        logger.debug("run finished after %d steps", steps)
        return steps

    def loop(self, stream: TextIO) -> None:
        w = self.machine
        while True:
            w.write(PROMPT)
            raw = stream.readline()
            if not raw:
                w.write("\n")
                return
            if not self.feed(raw):
                return


def repl(machine: Machine, stream: TextIO, err: Optional[TextIO] = None) -> None:
    """Run an interactive session reading lines from `stream` until EOF or `q`."""
    Repl(machine, err).loop(stream)
