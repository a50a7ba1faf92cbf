"""Custom exception hierarchy for the disassembler."""

from __future__ import annotations


class DisassemblerError(Exception):
    """Base class for all disassembly related errors."""


class BytecodeDecodeError(DisassemblerError):
    """Raised when the transport encoding of a bytecode blob is malformed."""


class UnknownOpcodeError(DisassemblerError):
    """Raised when an opcode byte has no entry in the dispatch table."""

    def __init__(self, opcode: int, offset: int) -> None:
        super().__init__(f"Unknown Opcode: {opcode} at offset 0x{offset:x}")
        self.opcode = opcode
        self.offset = offset


class TruncatedReadError(DisassemblerError):
    """Raised when a read would run past the end of the byte stream."""

    def __init__(self, offset: int, needed: int, available: int) -> None:
        super().__init__(
            f"read of {needed} byte(s) at offset 0x{offset:x} exceeds stream "
            f"({available} byte(s) left)"
        )
        self.offset = offset
        self.needed = needed
        self.available = available


class OpcodeMapError(DisassemblerError):
    """Raised when an opcode map configuration cannot be applied."""


__all__ = [
    "DisassemblerError",
    "BytecodeDecodeError",
    "UnknownOpcodeError",
    "TruncatedReadError",
    "OpcodeMapError",
]
