"""Trace records produced by the execution loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

OFFSET_SEPARATOR = "    "


def format_trace_line(offset: int, mnemonic: str, text: str) -> str:
    """Render ``0x<offset>    <MNEMONIC> <operands>``."""

    body = f"{mnemonic} {text}" if text else mnemonic
    return f"0x{offset:x}{OFFSET_SEPARATOR}{body}"


@dataclass(frozen=True)
class TraceLine:
    """One decoded instruction.

    ``offset`` is the cursor after the operands were consumed, i.e. the start
    of the next instruction; ``start`` is where the opcode byte sat.
    """

    offset: int
    start: int
    opcode: int
    mnemonic: str
    text: str

    @property
    def size(self) -> int:
        return self.offset - self.start

    def format(self) -> str:
        return format_trace_line(self.offset, self.mnemonic, self.text)

    def __str__(self) -> str:
        return self.format()

    def as_dict(self) -> Dict[str, object]:
        return {
            "offset": self.offset,
            "start": self.start,
            "opcode": self.opcode,
            "mnemonic": self.mnemonic,
            "text": self.text,
            "line": self.format(),
        }


__all__ = ["OFFSET_SEPARATOR", "TraceLine", "format_trace_line"]
