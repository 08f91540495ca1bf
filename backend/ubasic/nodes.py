"""Syntax tree for uBASIC programs.

Nodes are frozen dataclasses: the parser builds each one once and nothing
mutates it afterwards. Every expression node and every statement label keeps
the source `Position` it was parsed from so evaluation errors can point back
at the program text.

`format_stmt` renders a statement back to source form; the REPL uses it to
list the stored program.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .tokens import COMMA, OPERATORS, SEMICOLON, Position, Token


# --- expressions -----------------------------------------------------


@dataclass(frozen=True)
class Number:
    pos: Position
    value: int


@dataclass(frozen=True)
class Variable:
    pos: Position
    name: str


@dataclass(frozen=True)
class String:
    pos: Position
    value: str


@dataclass(frozen=True)
class Punct:
    """A `,` or `;` separator inside a PRINT argument list."""

    pos: Position
    kind: str


@dataclass(frozen=True)
class BinaryExpr:
    op: Token
    x: "Expr"
    y: "Expr"


@dataclass(frozen=True)
class ParenExpr:
    lparen: Token
    x: "Expr"
    rparen: Token


Expr = Union[Number, Variable, String, Punct, BinaryExpr, ParenExpr]


# --- statements ------------------------------------------------------


@dataclass(frozen=True)
class Label:
    pos: Position
    value: int

    def __str__(self) -> str:
        return f"{self.pos}: <{self.value}>"


@dataclass(frozen=True)
class Stmt:
    label: Label

    @property
    def line(self) -> int:
        return self.label.value

    def __str__(self) -> str:
        return format_stmt(self)


@dataclass(frozen=True)
class EndStmt(Stmt):
    keyword: Token


@dataclass(frozen=True)
class ForStmt(Stmt):
    keyword: Token
    var: Variable
    start: Expr
    to: Token
    end: Expr


@dataclass(frozen=True)
class NextStmt(Stmt):
    keyword: Token
    var: Variable


@dataclass(frozen=True)
class GotoStmt(Stmt):
    keyword: Token
    location: Number


@dataclass(frozen=True)
class GosubStmt(Stmt):
    keyword: Token
    location: Number


@dataclass(frozen=True)
class ReturnStmt(Stmt):
    keyword: Token


@dataclass(frozen=True)
class ElseStmt(Stmt):
    keyword: Token
    body: Stmt


@dataclass(frozen=True)
class IfStmt(Stmt):
    keyword: Token
    cond: Expr
    then: Token
    body: Stmt
    else_: Optional[ElseStmt] = None


@dataclass(frozen=True)
class LetStmt(Stmt):
    # None for a bare `X = ...` assignment
    keyword: Optional[Token]
    var: Variable
    value: Expr


@dataclass(frozen=True)
class PeekStmt(Stmt):
    keyword: Token
    addr: Expr
    var: Variable


@dataclass(frozen=True)
class PokeStmt(Stmt):
    keyword: Token
    addr: Expr
    value: Expr


@dataclass(frozen=True)
class PrintStmt(Stmt):
    keyword: Token
    args: Tuple[Expr, ...]


# --- formatting ------------------------------------------------------


def quote(s: str) -> str:
    out = s.replace("\\", "\\\\").replace('"', '\\"')
    out = out.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")
    return '"' + out + '"'


def format_expr(e: Expr) -> str:
    if isinstance(e, Number):
        return str(e.value)
    if isinstance(e, Variable):
        return e.name
    if isinstance(e, String):
        return quote(e.value)
    if isinstance(e, Punct):
        return OPERATORS.get(e.kind, "?")
    if isinstance(e, BinaryExpr):
        # fold left-deep chains iteratively
        spine = []
        while isinstance(e, BinaryExpr):
            spine.append(e)
            e = e.x
        text = format_expr(e)
        for b in reversed(spine):
            text = f"{text} {OPERATORS.get(b.op.kind, b.op.literal)} {format_expr(b.y)}"
        return text
    if isinstance(e, ParenExpr):
        return f"({format_expr(e.x)})"
    raise TypeError(f"unknown expression {type(e).__name__}")


def _format_print_args(args: Tuple[Expr, ...]) -> str:
    parts = []
    for arg in args:
        text = format_expr(arg)
        if isinstance(arg, Punct) and arg.kind in (COMMA, SEMICOLON) and parts:
            parts[-1] += text
        else:
            parts.append(text)
    return " ".join(parts)


def format_stmt(s: Stmt) -> str:
    """Render `s` as source text; IF/ELSE statements span several lines."""
    n = s.label.value
    if isinstance(s, LetStmt):
        prefix = "LET " if s.keyword is not None else ""
        return f"{n} {prefix}{s.var.name} = {format_expr(s.value)}"
    if isinstance(s, PrintStmt):
        args = _format_print_args(s.args)
        return f"{n} PRINT {args}" if args else f"{n} PRINT"
    if isinstance(s, IfStmt):
        text = f"{n} IF {format_expr(s.cond)} THEN\n{format_stmt(s.body)}"
        if s.else_ is not None:
            text += "\n" + format_stmt(s.else_)
        return text
    if isinstance(s, ElseStmt):
        return f"{n} ELSE\n{format_stmt(s.body)}"
    if isinstance(s, GotoStmt):
        return f"{n} GOTO {s.location.value}"
    if isinstance(s, GosubStmt):
        return f"{n} GOSUB {s.location.value}"
    if isinstance(s, ReturnStmt):
        return f"{n} RETURN"
    if isinstance(s, ForStmt):
        return f"{n} FOR {s.var.name} = {format_expr(s.start)} TO {format_expr(s.end)}"
    if isinstance(s, NextStmt):
        return f"{n} NEXT {s.var.name}"
    if isinstance(s, PeekStmt):
        return f"{n} PEEK {format_expr(s.addr)}, {s.var.name}"
    if isinstance(s, PokeStmt):
        return f"{n} POKE {format_expr(s.addr)}, {format_expr(s.value)}"
    if isinstance(s, EndStmt):
        return f"{n} END"
    raise TypeError(f"unknown statement {type(s).__name__}")
