"""Token kinds, source positions and the token value type."""

from dataclasses import dataclass

# special
EOF = "EOF"
ERROR = "ERROR"
CR = "CR"

# literals
NUMBER = "NUMBER"
STRING = "STRING"
VARIABLE = "VARIABLE"

# keywords
LET = "LET"
PRINT = "PRINT"
IF = "IF"
THEN = "THEN"
ELSE = "ELSE"
FOR = "FOR"
TO = "TO"
NEXT = "NEXT"
GOTO = "GOTO"
GOSUB = "GOSUB"
RETURN = "RETURN"
CALL = "CALL"
REM = "REM"
PEEK = "PEEK"
POKE = "POKE"
END = "END"

# punctuation and operators
COMMA = "COMMA"
SEMICOLON = "SEMICOLON"
LT = "LT"
GT = "GT"
LEQ = "LEQ"
GEQ = "GEQ"
NEQ = "NEQ"
EQ = "EQ"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
XOR = "XOR"
AND = "AND"
OR = "OR"
PLUS = "PLUS"
MINUS = "MINUS"
ASTR = "ASTR"
SLASH = "SLASH"
MOD = "MOD"
HASH = "HASH"

KEYWORDS = {
    "let": LET,
    "print": PRINT,
    "if": IF,
    "then": THEN,
    "else": ELSE,
    "for": FOR,
    "to": TO,
    "next": NEXT,
    "goto": GOTO,
    "gosub": GOSUB,
    "return": RETURN,
    "call": CALL,
    "rem": REM,
    "peek": PEEK,
    "poke": POKE,
    "end": END,
}

SINGLE_CHARS = {
    "\n": CR,
    "\r": CR,
    ",": COMMA,
    ";": SEMICOLON,
    "<": LT,
    ">": GT,
    "=": EQ,
    "(": LPAREN,
    ")": RPAREN,
    "^": XOR,
    "&": AND,
    "|": OR,
    "+": PLUS,
    "-": MINUS,
    "*": ASTR,
    "/": SLASH,
    "%": MOD,
    "#": HASH,
}

# source spelling of each operator, used when formatting a tree back to text
OPERATORS = {
    LT: "<",
    GT: ">",
    LEQ: "<=",
    GEQ: ">=",
    NEQ: "!=",
    EQ: "=",
    XOR: "^",
    AND: "&",
    OR: "|",
    PLUS: "+",
    MINUS: "-",
    ASTR: "*",
    SLASH: "/",
    MOD: "%",
    COMMA: ",",
    SEMICOLON: ";",
}


def lookup_ident(ident: str) -> str:
    """Return the keyword kind for `ident` (case-insensitive) or VARIABLE."""
    return KEYWORDS.get(ident.lower(), VARIABLE)


@dataclass(frozen=True)
class Position:
    filename: str = ""
    offset: int = 0
    line: int = 0
    column: int = 0

    def is_valid(self) -> bool:
        return self.line > 0

    def __str__(self) -> str:
        s = self.filename
        if self.is_valid():
            if s:
                s += ":"
            s += f"{self.line}:{self.column}"
        return s or "-"


@dataclass(frozen=True)
class Token:
    pos: Position
    kind: str
    literal: str = ""
