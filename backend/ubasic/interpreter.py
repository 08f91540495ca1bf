"""uBASIC interpreter module.

This module executes parsed uBASIC programs. A program is the ordered list of
statements in `Interpreter.lines` plus `Interpreter.locs`, a mapping from each
label to its index in that list. Execution is driven by a program counter:

- `step()` runs exactly one statement. The counter is advanced before the
  statement runs, so GOSUB saves the index of the following line and GOTO,
  NEXT and RETURN simply overwrite it.
- the interpreter halts when the counter runs off the end of the program or
  an END statement executes.
- fatal conditions (unknown jump targets, RETURN or NEXT without a matching
  GOSUB or FOR, unbound variables, division by zero) raise `EvalError`
  carrying the label of the statement being executed.

All arithmetic is done on signed 64-bit integers with two's-complement
wrap-around; comparisons evaluate to 1 or 0, and any non-zero value is true.

`run()` is the batch driver: it parses a whole source buffer, then runs it to
completion and returns the first error instead of raising.
"""

import logging
import operator
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from .errors import EvalError, ParseError, UBasicError
from .machine import Machine
from .nodes import (
    BinaryExpr,
    EndStmt,
    Expr,
    ForStmt,
    GosubStmt,
    GotoStmt,
    IfStmt,
    LetStmt,
    NextStmt,
    Number,
    ParenExpr,
    PeekStmt,
    PokeStmt,
    PrintStmt,
    Punct,
    ReturnStmt,
    Stmt,
    String,
    Variable,
)
from .parser import parse_program
from .tokens import (
    AND,
    ASTR,
    COMMA,
    EQ,
    GEQ,
    GT,
    LEQ,
    LT,
    MINUS,
    MOD,
    NEQ,
    OR,
    PLUS,
    SEMICOLON,
    SLASH,
    XOR,
    Position,
)

logger = logging.getLogger(__name__)


def wrap(n: int) -> int:
    """Reduce `n` to the signed 64-bit range, wrapping like machine integers."""
    return ((n + (1 << 63)) & ((1 << 64) - 1)) - (1 << 63)


def truth(x: bool) -> int:
    return 1 if x else 0


def _div(x: int, y: int) -> int:
    # truncates toward zero; ZeroDivisionError for y == 0
    q = abs(x) // abs(y)
    return q if (x < 0) == (y < 0) else -q


def _mod(x: int, y: int) -> int:
    return x - y * _div(x, y)


BINARY_OPS: Dict[str, Callable[[int, int], int]] = {
    PLUS: operator.add,
    MINUS: operator.sub,
    ASTR: operator.mul,
    SLASH: _div,
    MOD: _mod,
    AND: operator.and_,
    OR: operator.or_,
    XOR: operator.xor,
    LT: lambda x, y: truth(x < y),
    GT: lambda x, y: truth(x > y),
    LEQ: lambda x, y: truth(x <= y),
    GEQ: lambda x, y: truth(x >= y),
    NEQ: lambda x, y: truth(x != y),
    EQ: lambda x, y: truth(x == y),
}


@dataclass
class ForFrame:
    """One active FOR loop: where NEXT jumps back to, the variable, the bound."""

    block: int
    var: str
    to: int


class Interpreter:
    """Tree-walking executor for one uBASIC program.

    All execution state lives on the instance: variables, the GOSUB return
    stack, the FOR frame stack, the program counter and the halt flag. A
    batch run resets it before starting; the REPL keeps it between inputs.

    Args:
        machine: the output/PEEK/POKE capability statements run against.
    """

    def __init__(self, machine: Machine):
        self.machine = machine
        self.lines: List[Stmt] = []
        self.locs: Dict[int, int] = {}
        self.halt = False
        self.pc = 0
        self.vars: Dict[str, int] = {}
        self.subs: List[int] = []
        self.fors: List[ForFrame] = []
        self._current: Optional[Stmt] = None
        self._handlers = {
            ForStmt: self._exec_for,
            NextStmt: self._exec_next,
            IfStmt: self._exec_if,
            GotoStmt: self._exec_goto,
            GosubStmt: self._exec_gosub,
            ReturnStmt: self._exec_return,
            LetStmt: self._exec_let,
            EndStmt: self._exec_end,
            PeekStmt: self._exec_peek,
            PokeStmt: self._exec_poke,
            PrintStmt: self._exec_print,
        }

    def reset(self) -> None:
        """Clear the run state; the program itself is kept."""
        self.halt = False
        self.pc = 0
        self.vars = {}
        self.subs = []
        self.fors = []

    # --- program editing -------------------------------------------

    def build(self) -> None:
        """Rebuild the label index; a repeated label maps to its last line."""
        self.locs = {s.line: i for i, s in enumerate(self.lines)}

    def load(self, lines: List[Stmt]) -> None:
        self.lines = list(lines)
        self.build()

    def add_line(self, stmt: Stmt) -> int:
        """Store `stmt`, replacing any line with the same label in place.

        The label index is rebuilt and the program counter is left pointing
        at the stored line. Returns that line's index.
        """
        idx = self.locs.get(stmt.line)
        if idx is not None:
            self.lines[idx] = stmt
        else:
            idx = len(self.lines)
            self.lines.append(stmt)
        self.build()
        self.pc = idx
        logger.debug("stored line %d at index %d", stmt.line, idx)
        return idx

    # --- execution -------------------------------------------------

    def step(self) -> None:
        """Execute the statement at the program counter."""
        if self.pc >= len(self.lines):
            self.halt = True
        if self.halt:
            return
        stmt = self.lines[self.pc]
        self.pc += 1
        self.eval(stmt)

    def eval(self, stmt: Stmt) -> None:
        """Execute `stmt` against the current state without moving the counter first."""
        self._current = stmt
        try:
            self._exec(stmt)
        except RecursionError:
            raise self._fail("expression nested too deeply")

    def run_to_halt(self, max_steps: Optional[int] = None) -> int:
        """Step until halted and return the number of steps taken.

        When `max_steps` is given, stops early once that many statements ran;
        the caller can tell from `halt` whether the program finished.
        """
        steps = 0
        while not self.halt:
            if max_steps is not None and steps >= max_steps:
                break
            self.step()
            steps += 1
        return steps

    def _fail(self, message: str, pos: Optional[Position] = None) -> EvalError:
        label = self._current.line if self._current is not None else None
        if pos is None and self._current is not None:
            pos = self._current.label.pos
        return EvalError(message, label=label, pos=pos)

    def _exec(self, stmt: Stmt) -> None:
        handler = self._handlers.get(type(stmt))
        if handler is None:
            raise self._fail(f"unsupported statement {type(stmt).__name__}")
        handler(stmt)

    def _exec_for(self, s: ForStmt) -> None:
        self.vars[s.var.name] = self._expr(s.start)
        self.fors.append(ForFrame(self.pc, s.var.name, self._expr(s.end)))

    def _exec_next(self, s: NextStmt) -> None:
        if not self.fors:
            raise self._fail("non-matching next")
        frame = self.fors[-1]
        if frame.var == s.var.name:
            self.vars[frame.var] = wrap(self.vars[frame.var] + 1)
        if self.vars[frame.var] <= frame.to:
            self.pc = frame.block
        else:
            self.fors.pop()

    def _exec_if(self, s: IfStmt) -> None:
        if self._expr(s.cond) != 0:
            self._exec(s.body)
        elif s.else_ is not None:
            self._exec(s.else_.body)

    def _locate(self, kind: str, target: Number) -> int:
        loc = self.locs.get(target.value)
        if loc is None:
            raise self._fail(f"{kind}: location {target.value} does not exist", target.pos)
        return loc

    def _exec_goto(self, s: GotoStmt) -> None:
        self.pc = self._locate("goto", s.location)

    def _exec_gosub(self, s: GosubStmt) -> None:
        loc = self._locate("gosub", s.location)
        self.subs.append(self.pc)
        self.pc = loc

    def _exec_return(self, s: ReturnStmt) -> None:
        if not self.subs:
            raise self._fail("non-matching return")
        self.pc = self.subs.pop()

    def _exec_let(self, s: LetStmt) -> None:
        self.vars[s.var.name] = self._expr(s.value)

    def _exec_end(self, s: EndStmt) -> None:
        self.halt = True

    def _exec_peek(self, s: PeekStmt) -> None:
        self.vars[s.var.name] = wrap(self.machine.peek(self._expr(s.addr)))

    def _exec_poke(self, s: PokeStmt) -> None:
        self.machine.poke(self._expr(s.addr), self._expr(s.value))

    def _exec_print(self, s: PrintStmt) -> None:
        w = self.machine
        for arg in s.args:
            if isinstance(arg, String):
                w.write(arg.value)
            elif isinstance(arg, Punct):
                if arg.kind == COMMA:
                    w.write(" ")
                elif arg.kind != SEMICOLON:
                    raise self._fail(f"unknown print argument {arg.kind}", arg.pos)
            else:
                w.write(str(self._expr(arg)))

    # --- expressions -----------------------------------------------

    def _expr(self, e: Expr) -> int:
        # the parser builds `a + b + c` left-deep: walk down the left operands
        # and fold back up instead of recursing once per operator
        spine: List[BinaryExpr] = []
        while isinstance(e, (BinaryExpr, ParenExpr)):
            if isinstance(e, BinaryExpr):
                spine.append(e)
            e = e.x
        acc = self._operand(e)
        for b in reversed(spine):
            acc = self._binary(b, acc, self._expr(b.y))
        return acc

    def _operand(self, e: Expr) -> int:
        if isinstance(e, Number):
            return e.value
        if isinstance(e, Variable):
            if e.name not in self.vars:
                raise self._fail(f"unknown variable name {e.name!r}", e.pos)
            return self.vars[e.name]
        raise self._fail(f"cannot evaluate {type(e).__name__}")

    def _binary(self, e: BinaryExpr, x: int, y: int) -> int:
        fn = BINARY_OPS.get(e.op.kind)
        if fn is None:
            raise self._fail(f"unknown binary operator {e.op.kind}", e.op.pos)
        try:
            return wrap(fn(x, y))
        except ZeroDivisionError:
            raise self._fail("division by zero", e.op.pos)


def run(machine: Machine, name: str, source: Union[bytes, str]) -> Optional[UBasicError]:
    """Parse all of `source`, then execute it until it halts.

    Parsing stops at the first bad line. Returns the first parse or
    evaluation error, or None when the program ran to completion.
    """
    interp = Interpreter(machine)
    try:
        interp.load(parse_program(source, name))
    except ParseError as e:
        return e

    interp.reset()
    logger.debug("running %s: %d lines", name or "<input>", len(interp.lines))
    try:
        steps = interp.run_to_halt()
    except EvalError as e:
        return e
    logger.debug("%s halted after %d steps", name or "<input>", steps)
    return None
