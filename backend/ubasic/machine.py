"""The memory/console capability a uBASIC interpreter runs against.

PRINT output goes through `Machine.write`; PEEK and POKE go through
`Machine.peek` and `Machine.poke`. Hosts plug in their own implementation;
`MemoryMachine` is the reference one, backing memory with a dict.
"""

import sys
from abc import ABC, abstractmethod
from typing import Dict, Optional, TextIO


class Machine(ABC):
    @abstractmethod
    def write(self, text: str) -> int:
        """Write PRINT output; returns the number of characters written."""

    @abstractmethod
    def peek(self, addr: int) -> int:
        ...

    @abstractmethod
    def poke(self, addr: int, value: int) -> None:
        ...


class MemoryMachine(Machine):
    """Dictionary-backed memory plus a text stream for output.

    Addresses that were never poked read as zero. `written` counts the
    characters sent to `out` so callers can enforce output caps.

    Args:
        out: stream PRINT output is written to; defaults to sys.stdout
            looked up at write time.
        values: optional initial memory contents.
    """

    def __init__(self, out: Optional[TextIO] = None, values: Optional[Dict[int, int]] = None):
        self.out = out
        self.values: Dict[int, int] = dict(values or {})
        self.written = 0

    def write(self, text: str) -> int:
        out = self.out if self.out is not None else sys.stdout
        out.write(text)
        self.written += len(text)
        return len(text)

    def peek(self, addr: int) -> int:
        return self.values.get(addr, 0)

    def poke(self, addr: int, value: int) -> None:
        self.values[addr] = value
