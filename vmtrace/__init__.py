"""Static disassembler for register VM bytecode blobs."""

from __future__ import annotations

from vmtrace.byteops import ByteReader
from vmtrace.exceptions import (
    BytecodeDecodeError,
    DisassemblerError,
    OpcodeMapError,
    TruncatedReadError,
    UnknownOpcodeError,
)
from vmtrace.vm import Disassembler, OPCODE_TABLE, RegisterFile, TraceLine, disassemble

__version__ = "0.1.0"

__all__ = [
    "ByteReader",
    "BytecodeDecodeError",
    "Disassembler",
    "DisassemblerError",
    "OPCODE_TABLE",
    "OpcodeMapError",
    "RegisterFile",
    "TraceLine",
    "TruncatedReadError",
    "UnknownOpcodeError",
    "disassemble",
]
