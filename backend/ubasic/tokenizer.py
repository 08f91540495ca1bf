"""Tokenizer for uBASIC source text.

The tokenizer decodes its input one UTF-8 codepoint at a time and tracks the
byte offset, line and column of the current character, so every token it
produces carries the position of its first character. Lexical problems never
abort scanning: an unterminated string or an unknown character comes back as
an ERROR token whose literal is the diagnostic, and it is up to the parser to
turn that into a failure.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union

from .tokens import (
    EOF,
    ERROR,
    GEQ,
    LEQ,
    NEQ,
    NUMBER,
    REM,
    SINGLE_CHARS,
    STRING,
    Position,
    Token,
    lookup_ident,
)

_EOF = ""

_FUSED = {"<": LEQ, ">": GEQ, "!": NEQ}


@dataclass(frozen=True)
class Config:
    # when False, REM comments are skipped and never returned as tokens
    scan_comments: bool = False


def _is_letter(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _decode_rune(buf: bytes, i: int) -> Tuple[str, int]:
    """Decode the codepoint starting at buf[i]; invalid bytes give U+FFFD."""
    b = buf[i]
    if b < 0x80:
        return chr(b), 1
    if b >> 5 == 0b110:
        n = 2
    elif b >> 4 == 0b1110:
        n = 3
    elif b >> 3 == 0b11110:
        n = 4
    else:
        return "\ufffd", 1
    try:
        return buf[i:i + n].decode("utf-8"), n
    except UnicodeDecodeError:
        return "\ufffd", 1


class Tokenizer:
    """Turns a named source buffer into a stream of positioned tokens.

    Call `next()` repeatedly; once the input is exhausted it keeps returning
    an EOF token. Iterating over the tokenizer yields tokens up to and
    including the first EOF.
    """

    def __init__(self, source: Union[bytes, str] = b"", name: str = "", config: Optional[Config] = None):
        self.init(source, name, config)

    def init(self, source: Union[bytes, str], name: str = "", config: Optional[Config] = None) -> None:
        """(Re)start scanning `source`, discarding any previous state."""
        if isinstance(source, str):
            source = source.encode("utf-8")
        self.config = config or Config()
        self.name = name
        self.src = bytes(source)
        self.ch: Optional[str] = None
        self.offset = 0
        self._rd_offset = 0
        self.line = 1
        self.column = 0
        self._next()

    def _next(self) -> None:
        if self.ch == _EOF:
            return
        if self.ch == "\n":
            self.line += 1
            self.column = 0
        self.offset = self._rd_offset
        self.column += 1
        if self._rd_offset < len(self.src):
            self.ch, width = _decode_rune(self.src, self._rd_offset)
            self._rd_offset += width
        else:
            self.ch = _EOF

    def _text(self, start: int) -> str:
        return self.src[start:self.offset].decode("utf-8", errors="replace")

    def next(self) -> Token:
        while True:
            self._skip_blanks()
            pos = Position(self.name, self.offset, self.line, self.column)
            ch = self.ch
            if _is_letter(ch):
                lit = self._ident()
                kind = lookup_ident(lit)
                if kind == REM:
                    lit += self._comment()
                    if not self.config.scan_comments:
                        continue
            elif _is_digit(ch):
                kind, lit = NUMBER, self._number()
            elif ch == '"':
                kind, lit = self._string()
            elif ch == _EOF:
                kind, lit = EOF, ""
            else:
                self._next()
                kind, lit = self._operator(ch)
            return Token(pos, kind, lit)

    def __iter__(self) -> Iterator[Token]:
        while True:
            tok = self.next()
            yield tok
            if tok.kind == EOF:
                return

    def _skip_blanks(self) -> None:
        while self.ch in (" ", "\t"):
            self._next()

    def _operator(self, ch: str) -> Tuple[str, str]:
        if ch in _FUSED and self.ch == "=":
            self._next()
            return _FUSED[ch], ch + "="
        kind = SINGLE_CHARS.get(ch)
        if kind is None:
            return ERROR, f"unknown character {ch!r}"
        return kind, ch

    def _ident(self) -> str:
        start = self.offset
        while _is_letter(self.ch) or _is_digit(self.ch):
            self._next()
        return self._text(start)

    def _comment(self) -> str:
        # the line terminator is left for the next token
        start = self.offset
        while self.ch not in ("\n", "\r", _EOF):
            self._next()
        return self._text(start)

    def _number(self) -> str:
        start = self.offset
        while _is_digit(self.ch):
            self._next()
        return self._text(start)

    def _string(self) -> Tuple[str, str]:
        start = self.offset
        while True:
            self._next()
            if self.ch in (_EOF, "\n", "\r"):
                return ERROR, "unterminated string"
            if self.ch == '"':
                break
        self._next()
        return STRING, self._text(start)


def tokenize(source: Union[bytes, str], name: str = "", config: Optional[Config] = None) -> list:
    """Return every token of `source`, ending with the EOF token."""
    return list(Tokenizer(source, name, config))
