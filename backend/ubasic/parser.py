"""Recursive-descent parser for uBASIC.

`Parser.line()` returns one complete statement per call. Each statement
starts with its label and ends at a line terminator (or end of input):

    stmt     := Label ( print | if | goto | gosub | return | for | peek
                      | poke | next | end | [LET] VARIABLE '=' expr )
    print    := PRINT ( STRING | expr | ',' | ';' )*
    if       := IF relation THEN CR stmt [ Label ELSE CR stmt ]
    relation := expr ( ( < | > | <= | >= | != | = ) expr )*
    expr     := term ( ( + | - | & | '|' | ^ ) term )*
    term     := factor ( ( * | / | % ) factor )*
    factor   := NUMBER | '(' expr ')' | VARIABLE

An ELSE always sits on its own labelled line after the IF body. To find it
the parser reads the next label and looks at the token after it; when that
token is not ELSE, it goes into a single pushback slot and the label is
restored, so the following `line()` call parses that line normally.

Grammar errors raise `ParseError`. Before the exception leaves `line()` the
parser discards the rest of the offending line, so callers reading a program
line by line can report the error and carry on.
"""

import ast
import warnings
from typing import Iterator, List, Optional, Union

from .errors import ParseError
from .nodes import (
    BinaryExpr,
    ElseStmt,
    EndStmt,
    Expr,
    ForStmt,
    GosubStmt,
    GotoStmt,
    IfStmt,
    Label,
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
from .tokenizer import Config, Tokenizer
from .tokens import (
    AND,
    ASTR,
    COMMA,
    CR,
    ELSE,
    END,
    EOF,
    EQ,
    ERROR,
    FOR,
    GEQ,
    GOSUB,
    GOTO,
    GT,
    IF,
    LEQ,
    LET,
    LPAREN,
    LT,
    MINUS,
    MOD,
    NEQ,
    NEXT,
    NUMBER,
    OR,
    PEEK,
    PLUS,
    POKE,
    PRINT,
    REM,
    RETURN,
    RPAREN,
    SEMICOLON,
    SLASH,
    STRING,
    THEN,
    TO,
    VARIABLE,
    XOR,
    Token,
)

MIN_INT64 = -(1 << 63)
MAX_INT64 = (1 << 63) - 1

_RELATION_OPS = (LT, GT, LEQ, GEQ, NEQ, EQ)
_EXPR_OPS = (PLUS, MINUS, AND, OR, XOR)
_TERM_OPS = (ASTR, SLASH, MOD)


class Parser:
    def __init__(self, tokenizer: Tokenizer):
        self.tokenizer = tokenizer
        self.tok: Token
        # single pushback slot used by the dangling-else lookahead
        self._look: Optional[Token] = None
        self._dispatch = {
            PRINT: self._parse_print,
            GOTO: self._parse_goto,
            GOSUB: self._parse_gosub,
            RETURN: self._parse_return,
            FOR: self._parse_for,
            PEEK: self._parse_peek,
            POKE: self._parse_poke,
            NEXT: self._parse_next,
            END: self._parse_end,
            LET: self._parse_let,
            VARIABLE: self._parse_let,
        }
        self._next()

    def reset(self, tokenizer: Optional[Tokenizer] = None) -> None:
        """Drop any pushed-back token and prime the parser again.

        Pass a new tokenizer, or re-`init` the current one before calling.
        """
        if tokenizer is not None:
            self.tokenizer = tokenizer
        self._look = None
        self._next()

    # --- token helpers ---------------------------------------------

    def _next(self) -> None:
        if self._look is not None:
            self.tok, self._look = self._look, None
            return
        while True:
            tok = self.tokenizer.next()
            if tok.kind != REM:
                break
        self.tok = tok

    def _error(self, message: str) -> ParseError:
        if self.tok.kind == ERROR:
            message = self.tok.literal
        return ParseError(message, pos=self.tok.pos)

    def _synch(self) -> None:
        while self.tok.kind not in (CR, EOF):
            self._next()
        if self.tok.kind == CR:
            self._next()

    def _skip_cr(self) -> None:
        while self.tok.kind == CR:
            self._next()

    def _accept(self, kind: str) -> Token:
        if self.tok.kind != kind:
            raise self._error(f"expected {kind}, but got {self.tok.kind}")
        tok = self.tok
        self._next()
        return tok

    def _accept_cr(self) -> None:
        if self.tok.kind == CR:
            self._next()
        elif self.tok.kind != EOF:
            raise self._error(f"expected newline, got {self.tok.kind}")

    def _number(self, tok: Token) -> Number:
        try:
            value = int(tok.literal)
        except ValueError as e:
            raise ParseError(f"invalid number {tok.literal!r}: {e}", pos=tok.pos)
        if not MIN_INT64 <= value <= MAX_INT64:
            raise ParseError(f"invalid number {tok.literal!r}: value out of range", pos=tok.pos)
        return Number(tok.pos, value)

    def _accept_number(self) -> Number:
        return self._number(self._accept(NUMBER))

    def _accept_variable(self) -> Variable:
        tok = self._accept(VARIABLE)
        return Variable(tok.pos, tok.literal)

    def _unquote(self, tok: Token) -> str:
        # escape errors (including the invalid-escape warning) are parse errors
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            try:
                value = ast.literal_eval(tok.literal)
            except (SyntaxError, ValueError, Warning) as e:
                raise ParseError(f"invalid string {tok.literal}: {e}", pos=tok.pos)
        if not isinstance(value, str):
            raise ParseError(f"invalid string {tok.literal}", pos=tok.pos)
        return value

    # --- statements ------------------------------------------------

    def line(self) -> Optional[Stmt]:
        """Parse the next statement; None once the input is exhausted."""
        try:
            self._skip_cr()
            if self.tok.kind == EOF:
                return None
            return self._stmt()
        except ParseError:
            self._synch()
            raise
        except RecursionError:
            err = ParseError("expression nested too deeply", pos=self.tok.pos)
            self._synch()
            raise err

    def __iter__(self) -> Iterator[Stmt]:
        while True:
            stmt = self.line()
            if stmt is None:
                return
            yield stmt

    def _stmt(self) -> Stmt:
        self._skip_cr()
        num = self._accept_number()
        label = Label(num.pos, num.value)

        if self.tok.kind == IF:
            # the nested statement consumes the line ending
            return self._parse_if(label)

        handler = self._dispatch.get(self.tok.kind)
        if handler is None:
            raise self._error(f"unsupported statement {self.tok.literal!r}")
        stmt = handler(label)
        self._accept_cr()
        return stmt

    def _parse_print(self, label: Label) -> PrintStmt:
        keyword = self._accept(PRINT)
        args: List[Expr] = []
        while True:
            tok = self.tok
            if tok.kind == STRING:
                args.append(String(tok.pos, self._unquote(tok)))
                self._next()
            elif tok.kind in (COMMA, SEMICOLON):
                args.append(Punct(tok.pos, tok.kind))
                self._next()
            elif tok.kind in (VARIABLE, NUMBER):
                args.append(self._expr())
            elif tok.kind in (CR, EOF):
                break
            else:
                raise self._error(f"unknown print type {tok.literal!r}")
        return PrintStmt(label, keyword, tuple(args))

    def _parse_if(self, label: Label) -> IfStmt:
        keyword = self._accept(IF)
        cond = self._relation()
        then = self._accept(THEN)
        self._accept_cr()
        body = self._stmt()
        return IfStmt(label, keyword, cond, then, body, self._parse_else())

    def _parse_else(self) -> Optional[ElseStmt]:
        self._skip_cr()
        if self.tok.kind != NUMBER:
            return None
        num_tok = self.tok
        self._next()
        if self.tok.kind != ELSE:
            self._look = self.tok
            self.tok = num_tok
            return None

        num = self._number(num_tok)
        keyword = self._accept(ELSE)
        self._accept_cr()
        body = self._stmt()
        return ElseStmt(Label(num.pos, num.value), keyword, body)

    def _parse_goto(self, label: Label) -> GotoStmt:
        keyword = self._accept(GOTO)
        return GotoStmt(label, keyword, self._accept_number())

    def _parse_gosub(self, label: Label) -> GosubStmt:
        keyword = self._accept(GOSUB)
        return GosubStmt(label, keyword, self._accept_number())

    def _parse_return(self, label: Label) -> ReturnStmt:
        return ReturnStmt(label, self._accept(RETURN))

    def _parse_for(self, label: Label) -> ForStmt:
        keyword = self._accept(FOR)
        var = self._accept_variable()
        self._accept(EQ)
        start = self._expr()
        to = self._accept(TO)
        end = self._expr()
        return ForStmt(label, keyword, var, start, to, end)

    def _parse_peek(self, label: Label) -> PeekStmt:
        keyword = self._accept(PEEK)
        addr = self._expr()
        self._accept(COMMA)
        return PeekStmt(label, keyword, addr, self._accept_variable())

    def _parse_poke(self, label: Label) -> PokeStmt:
        keyword = self._accept(POKE)
        addr = self._expr()
        self._accept(COMMA)
        return PokeStmt(label, keyword, addr, self._expr())

    def _parse_next(self, label: Label) -> NextStmt:
        keyword = self._accept(NEXT)
        return NextStmt(label, keyword, self._accept_variable())

    def _parse_end(self, label: Label) -> EndStmt:
        return EndStmt(label, self._accept(END))

    def _parse_let(self, label: Label) -> LetStmt:
        keyword = self._accept(LET) if self.tok.kind == LET else None
        var = self._accept_variable()
        self._accept(EQ)
        return LetStmt(label, keyword, var, self._expr())

    # --- expressions -----------------------------------------------

    def _relation(self) -> Expr:
        x = self._expr()
        while self.tok.kind in _RELATION_OPS:
            op = self.tok
            self._next()
            x = BinaryExpr(op, x, self._expr())
        return x

    def _expr(self) -> Expr:
        x = self._term()
        while self.tok.kind in _EXPR_OPS:
            op = self.tok
            self._next()
            x = BinaryExpr(op, x, self._term())
        return x

    def _term(self) -> Expr:
        x = self._factor()
        while self.tok.kind in _TERM_OPS:
            op = self.tok
            self._next()
            x = BinaryExpr(op, x, self._factor())
        return x

    def _factor(self) -> Expr:
        if self.tok.kind == NUMBER:
            return self._accept_number()
        if self.tok.kind == LPAREN:
            lparen = self._accept(LPAREN)
            x = self._expr()
            return ParenExpr(lparen, x, self._accept(RPAREN))
        return self._accept_variable()


def parse_program(source: Union[bytes, str], name: str = "", config: Optional[Config] = None) -> List[Stmt]:
    """Parse every statement of `source`, raising the first ParseError."""
    return list(Parser(Tokenizer(source, name, config)))
