"""Register VM components: dispatch table, register file and execution loop."""

from __future__ import annotations

from vmtrace.vm.disassembler import Disassembler, disassemble
from vmtrace.vm.opcode_map import OpcodeMap, load_opcode_map
from vmtrace.vm.opcodes import OPCODE_TABLE, InstructionSpec, build_opcode_table
from vmtrace.vm.registers import UNKNOWN, RegisterFile
from vmtrace.vm.trace import TraceLine

__all__ = [
    "Disassembler",
    "InstructionSpec",
    "OPCODE_TABLE",
    "OpcodeMap",
    "RegisterFile",
    "TraceLine",
    "UNKNOWN",
    "build_opcode_table",
    "disassemble",
    "load_opcode_map",
]
