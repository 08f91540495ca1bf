"""Exception types shared by the uBASIC parser, interpreter and drivers.

Every error raised by the language pipeline derives from `UBasicError`, so
drivers can catch a single class at their boundary. Errors carry the source
`Position` they originated from when one is known; evaluation errors also
carry the label of the statement that was running.
"""

from typing import Any, Dict, Optional

from .tokens import Position


class UBasicError(Exception):
    """Base class for all uBASIC errors.

    Attributes:
        message: the bare diagnostic without any position prefix
        pos: optional source position the error refers to
    """

    def __init__(self, message: str, *, pos: Optional[Position] = None):
        self.message = message
        self.pos = pos
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.pos is not None:
            return f"{self.pos}: {self.message}"
        return self.message

    def to_dict(self, code: str) -> Dict[str, Any]:
        err: Dict[str, Any] = {"code": code, "message": str(self)}
        if self.pos is not None:
            err["line"] = self.pos.line
            err["column"] = self.pos.column
        return err


class ParseError(UBasicError):
    """Raised for lexical and grammar errors.

    The parser has already resynchronized to the next line by the time a
    caller sees this exception, so line-by-line callers may keep parsing.
    """


class EvalError(UBasicError):
    """Raised when executing a statement fails.

    Attributes:
        label: the line number of the statement being executed, if known
    """

    def __init__(self, message: str, *, label: Optional[int] = None, pos: Optional[Position] = None):
        self.label = label
        super().__init__(message, pos=pos)

    def __str__(self) -> str:
        prefix = f"{self.pos}: " if self.pos is not None else ""
        if self.label is not None:
            return f"{prefix}line {self.label}: {self.message}"
        return prefix + self.message

    def to_dict(self, code: str) -> Dict[str, Any]:
        err = super().to_dict(code)
        if self.label is not None:
            err["label"] = self.label
        return err
