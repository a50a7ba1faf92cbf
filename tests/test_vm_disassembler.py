from __future__ import annotations

import base64
from typing import List

import pytest

from asm_helpers import assemble, double, new_value, word
from vmtrace.exceptions import BytecodeDecodeError, TruncatedReadError, UnknownOpcodeError
from vmtrace.vm.disassembler import HALTED, RUNNING, Disassembler, disassemble
from vmtrace.vm.opcodes import build_opcode_table
from vmtrace.vm.registers import UNKNOWN
from vmtrace.vm.trace import TraceLine


def test_init_memory_line() -> None:
    assert disassemble(bytes([124, 0, 5])) == ["0x3    INIT MEMORY 5 -> reg0"]


def test_new_value_line_and_register() -> None:
    disasm = Disassembler(assemble(new_value(1, "window")))
    trace = disasm.execute()
    assert [line.format() for line in trace] == ["0xa    NEW VALUE 'window' -> reg1"]
    assert disasm.registers[1] == "window"
    assert disasm.state == HALTED


def test_register_propagation(window_program: bytes) -> None:
    disasm = Disassembler(window_program)
    disasm.execute()
    assert disasm.lines() == [
        "0xa    NEW VALUE 'window' -> reg1",
        "0xe    GET PROPERTY reg0[window] -> reg2",
        "0x12    GET PROPERTY reg0[reg7] -> reg3",
    ]
    assert disasm.registers[7] is UNKNOWN


def test_offsets_are_measured_after_operands() -> None:
    program = assemble(
        [6, 7, 5, 6],
        [166],
        [241, 2, *word(0x10)],
        [51, 3, *double(-1.0)],
    )
    disasm = Disassembler(program)
    trace = disasm.execute()
    assert [(line.start, line.offset, line.size) for line in trace] == [
        (0, 4, 4),
        (4, 5, 1),
        (5, 11, 6),
        (11, 21, 10),
    ]
    assert disasm.lines() == [
        "0x4    MUL reg5 * reg6 -> reg7",
        "0x5    HALT",
        "0xb    MOV IMM 16 -> reg2",
        "0x15    LOAD DOUBLE -1 -> reg3",
    ]


def test_halt_does_not_stop_the_walk() -> None:
    lines = disassemble(bytes([166, 166, 124, 1, 2]))
    assert lines == ["0x1    HALT", "0x2    HALT", "0x5    INIT MEMORY 2 -> reg1"]


def test_jumps_are_not_followed() -> None:
    program = assemble([93, *word(0)], [39, 1, *word(0)], [124, 0, 1])
    lines = disassemble(program)
    assert lines == [
        "0x5    JUMP 0",
        "0xb    JUMP IF FALSE reg1, entry(0)",
        "0xe    INIT MEMORY 1 -> reg0",
    ]


def test_empty_stream_is_halted() -> None:
    disasm = Disassembler(b"")
    assert disasm.state == HALTED
    assert disasm.step() is None
    assert disasm.execute() == []


def test_unknown_opcode_aborts_without_line() -> None:
    emitted: List[TraceLine] = []
    disasm = Disassembler(bytes([124, 0, 5, 0, 124, 0, 6]), emit=emitted.append)
    with pytest.raises(UnknownOpcodeError) as excinfo:
        disasm.execute()
    assert excinfo.value.opcode == 0
    assert excinfo.value.offset == 3
    assert "0" in str(excinfo.value)
    assert [line.format() for line in emitted] == ["0x3    INIT MEMORY 5 -> reg0"]
    assert len(disasm.trace) == 1
    assert disasm.cursor == 3


def test_truncated_operand_aborts_without_line() -> None:
    disasm = Disassembler(bytes([124, 0, 5, 251, 1]))
    with pytest.raises(TruncatedReadError):
        disasm.execute()
    assert disasm.lines() == ["0x3    INIT MEMORY 5 -> reg0"]


def test_argc_past_end_is_a_bounds_violation() -> None:
    with pytest.raises(TruncatedReadError):
        disassemble(bytes([88, 0, 200, 1, 2]))


def test_zero_argc_is_valid() -> None:
    assert disassemble(bytes([215, 3, 4, 0])) == ["0x4    CALL FUNCTION reg4() -> reg3"]


def test_emit_streams_lines_in_order(window_program: bytes) -> None:
    seen: List[str] = []
    disasm = Disassembler(window_program, emit=lambda line: seen.append(str(line)))
    iterator = disasm.iter_trace()
    first = next(iterator)
    assert seen == [first.format()]
    assert disasm.state == RUNNING
    list(iterator)
    assert seen == disasm.lines()


def test_base64_text_input(window_program: bytes) -> None:
    encoded = base64.b64encode(window_program).decode("ascii")
    wrapped = "\n".join(encoded[i : i + 4] for i in range(0, len(encoded), 4))
    assert disassemble(wrapped) == disassemble(window_program)


def test_bad_base64_text_input() -> None:
    with pytest.raises(BytecodeDecodeError):
        Disassembler("not base64!!")


def test_custom_opcode_table() -> None:
    table = build_opcode_table({0: "INIT MEMORY"})
    assert disassemble(bytes([0, 1, 2]), opcode_table=table) == ["0x3    INIT MEMORY 2 -> reg1"]


def test_trace_line_as_dict() -> None:
    disasm = Disassembler(bytes([124, 0, 5]))
    (line,) = disasm.execute()
    assert line.as_dict() == {
        "offset": 3,
        "start": 0,
        "opcode": 124,
        "mnemonic": "INIT MEMORY",
        "text": "5 -> reg0",
        "line": "0x3    INIT MEMORY 5 -> reg0",
    }
