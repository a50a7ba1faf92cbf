"""Linear execution loop turning a bytecode blob into an instruction trace.

The loop walks the stream from offset ``0`` to its end, one opcode byte at a
time.  Jump targets are printed but never followed, and the ``HALT``
instruction does not stop the walk: only exhausting the input does.  Unknown
opcodes and truncated operands abort the run with an exception; lines that
were already emitted stay valid.

All analysis is static, nothing in the bytecode is executed.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Mapping, Optional, Union

from vmtrace.byteops import ByteReader
from vmtrace.io.loader import decode_bytecode
from vmtrace.vm.opcodes import OPCODE_TABLE, InstructionSpec, lookup
from vmtrace.vm.registers import RegisterFile
from vmtrace.vm.trace import TraceLine

LOGGER = logging.getLogger(__name__)

RUNNING = "RUNNING"
HALTED = "HALTED"

TraceSink = Callable[[TraceLine], None]


class Disassembler:
    """Decode one bytecode blob into :class:`TraceLine` records."""

    def __init__(
        self,
        bytecode: Union[bytes, bytearray, str],
        *,
        opcode_table: Mapping[int, InstructionSpec] = OPCODE_TABLE,
        emit: Optional[TraceSink] = None,
    ) -> None:
        """``bytecode`` is either the raw stream or its base64 text form.

        ``emit`` receives every line as soon as it is decoded, so callers can
        stream output instead of waiting for :meth:`execute` to return.
        """

        if isinstance(bytecode, str):
            bytecode = decode_bytecode(bytecode)
        self.reader = ByteReader(bytes(bytecode))
        self.opcode_table = opcode_table
        self.registers = RegisterFile()
        self.trace: List[TraceLine] = []
        self.emit = emit
        self.state = HALTED if self.reader.at_end else RUNNING

    @property
    def cursor(self) -> int:
        return self.reader.offset

    # ------------------------------------------------------------------
    def step(self) -> Optional[TraceLine]:
        """Decode a single instruction, or return ``None`` once halted."""

        reader = self.reader
        if reader.at_end:
            self.state = HALTED
            return None

        start = reader.offset
        opcode = reader.peek_byte()
        spec = lookup(opcode, start, self.opcode_table)
        reader.offset += 1
        LOGGER.debug("Executing %s (opcode %d) at 0x%x", spec.mnemonic, opcode, start)

        text = spec.decode(reader, self.registers)
        line = TraceLine(
            offset=reader.offset,
            start=start,
            opcode=opcode,
            mnemonic=spec.mnemonic,
            text=text,
        )
        self.trace.append(line)
        if self.emit is not None:
            self.emit(line)
        if reader.at_end:
            self.state = HALTED
        return line

    # ------------------------------------------------------------------
    def iter_trace(self) -> Iterator[TraceLine]:
        """Yield trace lines in program order as they are decoded."""

        while self.state == RUNNING:
            line = self.step()
            if line is None:
                break
            yield line

    def execute(self) -> List[TraceLine]:
        """Run until the stream is exhausted and return the full trace."""

        for _ in self.iter_trace():
            pass
        LOGGER.debug("Decoded %d instruction(s) from %d bytes", len(self.trace), len(self.reader))
        return self.trace

    def lines(self) -> List[str]:
        return [line.format() for line in self.trace]


def disassemble(
    bytecode: Union[bytes, bytearray, str],
    *,
    opcode_table: Mapping[int, InstructionSpec] = OPCODE_TABLE,
) -> List[str]:
    """Convenience wrapper returning the formatted trace of ``bytecode``."""

    disasm = Disassembler(bytecode, opcode_table=opcode_table)
    disasm.execute()
    return disasm.lines()


__all__ = ["Disassembler", "HALTED", "RUNNING", "TraceSink", "disassemble"]
