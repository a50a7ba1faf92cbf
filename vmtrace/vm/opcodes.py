from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from vmtrace.byteops import ByteReader
from vmtrace.exceptions import UnknownOpcodeError
from vmtrace.vm.registers import RegisterFile, register_name

# Handlers consume their operands from the reader, may record a value in the
# register file and return the operand rendering for the trace line.
OpcodeHandler = Callable[[ByteReader, RegisterFile], str]


INIT_MEMORY = "INIT MEMORY"
NEW_VALUE = "NEW VALUE"
MOV_IMM = "MOV IMM"
LOAD_IMM = "LOAD IMM"
LOAD_DOUBLE = "LOAD DOUBLE"
GET_PROPERTY = "GET PROPERTY"
SET_PROPERTY = "SET PROPERTY"
CALL_FUNCTION = "CALL FUNCTION"
CALL_APPLY = "CALL APPLY"
PUSH_ARGS = "PUSH ARGS"
NEW_FUNCTION = "NEW FUNCTION"
JUMP_FRAME = "JUMP FRAME"
RET = "RET"
ADD = "ADD"
SUB = "SUB"
MUL = "MUL"
DIV = "DIV"
MOD = "MOD"
OR = "OR"
AND = "AND"
XOR = "XOR"
SHL = "SHL"
SHR = "SHR"
USHR = "USHR"
LESS_THAN = "LESS THAN"
LTE = "LTE"
EQUAL = "EQUAL"
NOT_EQUAL = "NOT EQUAL"
STRICT_EQUAL = "STRICT EQUAL"
STRICT_NOT_EQUAL = "STRICT NOT EQUAL"
JUMP = "JUMP"
JUMP_IF_FALSE = "JUMP IF FALSE"
JUMP_IF_TRUE = "JUMP IF TRUE"
TRY_CATCH = "TRY CATCH"
THROW = "THROW"
HALT = "HALT"


@dataclass(frozen=True)
class InstructionSpec:
    """Dispatch entry binding an opcode byte to its handler."""

    opcode: int
    mnemonic: str
    operands: str
    handler: OpcodeHandler

    def decode(self, reader: ByteReader, registers: RegisterFile) -> str:
        return self.handler(reader, registers)


def format_number(value: float) -> str:
    """Print integral doubles without a trailing ``.0``."""

    if value.is_integer():
        return str(int(value))
    return repr(value)


def _register_list(reader: ByteReader) -> List[str]:
    count = reader.read_byte()
    return [register_name(reg) for reg in reader.read_register_list(count)]


# Memory and value loads

def handle_init_memory(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    value = reader.read_byte()
    return f"{value} -> reg{reg}"


def handle_new_value(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    value = reader.read_obfuscated_string()
    registers.write(reg, value)
    return f"'{value}' -> reg{reg}"


def handle_mov_imm(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    value = reader.read_word()
    return f"{value} -> reg{reg}"


def handle_load_imm(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    value = reader.read_byte()
    return f"{value} -> reg{reg}"


def handle_load_double(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    value = reader.read_double()
    return f"{format_number(value)} -> reg{reg}"


# Property access

def handle_get_property(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    obj_reg = reader.read_byte()
    prop_reg = reader.read_byte()
    return f"reg{obj_reg}[{registers.render(prop_reg)}] -> reg{reg}"


def handle_set_property(reader: ByteReader, registers: RegisterFile) -> str:
    obj_reg = reader.read_byte()
    prop_reg = reader.read_byte()
    val_reg = reader.read_byte()
    return f"reg{obj_reg}[{registers.render(prop_reg)}] = {registers.render(val_reg)}"


# Calls and frames

def handle_call_function(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    func = registers.render(reader.read_byte())
    args = ",".join(_register_list(reader))
    return f"{func}({args}) -> reg{reg}"


def handle_call_apply(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    func = registers.render(reader.read_byte())
    this_reg = reader.read_byte()
    args = ",".join(_register_list(reader))
    return f"{func}.apply(reg{this_reg}, [{args}]) -> reg{reg}"


def handle_push_args(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    args = ",".join(_register_list(reader))
    return f"[{args}] -> reg{reg}"


def handle_new_function(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    entry = reader.read_word()
    args = ",".join(_register_list(reader))
    return f"entry({entry}), args({args}) -> reg{reg}"


def handle_jump_frame(reader: ByteReader, registers: RegisterFile) -> str:
    entry = reader.read_word()
    context = reader.read_byte()
    params = ",".join(_register_list(reader))
    return f"entry({entry}), {context}, params({params})"


def handle_ret(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    values = ",".join(_register_list(reader))
    return f"reg{reg} [{values}]"


# Arithmetic, bitwise and comparison share the dst/left/right layout

def binary_handler(symbol: str) -> OpcodeHandler:
    """Build a handler for a ``dst, left, right`` instruction printing ``symbol``."""

    def handler(reader: ByteReader, registers: RegisterFile) -> str:
        reg = reader.read_byte()
        left_reg = reader.read_byte()
        right_reg = reader.read_byte()
        return f"reg{left_reg} {symbol} reg{right_reg} -> reg{reg}"

    return handler


BINARY_OPERATORS: Mapping[str, str] = MappingProxyType(
    {
        ADD: "+",
        SUB: "-",
        MUL: "*",
        DIV: "/",
        MOD: "%",
        OR: "|",
        AND: "&",
        XOR: "^",
        SHL: "<<",
        SHR: ">>",
        USHR: ">>>",
        LESS_THAN: "<",
        LTE: "<=",
        EQUAL: "==",
        NOT_EQUAL: "!=",
        STRICT_EQUAL: "===",
        STRICT_NOT_EQUAL: "!==",
    }
)


# Control flow.  Targets are printed only; the cursor keeps walking linearly.

def handle_jump(reader: ByteReader, registers: RegisterFile) -> str:
    return str(reader.read_word())


def handle_jump_if_false(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    target = reader.read_word()
    return f"reg{reg}, entry({target})"


handle_jump_if_true = handle_jump_if_false


def handle_try_catch(reader: ByteReader, registers: RegisterFile) -> str:
    reg = reader.read_byte()
    catch_offset = reader.read_word()
    finally_offset = reader.read_word()
    continue_offset = reader.read_word()
    return f"[{catch_offset}, {finally_offset}, {continue_offset}] -> reg{reg}"


def handle_throw(reader: ByteReader, registers: RegisterFile) -> str:
    return register_name(reader.read_byte())


def handle_halt(reader: ByteReader, registers: RegisterFile) -> str:
    return ""


_THREE_REGISTERS = "dst, left, right"

# (opcode, mnemonic, operand layout, handler)
_CATALOG: Tuple[Tuple[int, str, str, Optional[OpcodeHandler]], ...] = (
    (124, INIT_MEMORY, "reg, byte", handle_init_memory),
    (23, NEW_VALUE, "reg, string", handle_new_value),
    (241, MOV_IMM, "reg, word", handle_mov_imm),
    (181, LOAD_IMM, "reg, byte", handle_load_imm),
    (51, LOAD_DOUBLE, "reg, double", handle_load_double),
    (251, GET_PROPERTY, "dst, obj, prop", handle_get_property),
    (99, SET_PROPERTY, "obj, prop, val", handle_set_property),
    (215, CALL_FUNCTION, "dst, func, argc, args...", handle_call_function),
    (90, CALL_APPLY, "dst, func, this, argc, args...", handle_call_apply),
    (88, PUSH_ARGS, "dst, argc, args...", handle_push_args),
    (171, NEW_FUNCTION, "dst, entry(word), argc, args...", handle_new_function),
    (49, JUMP_FRAME, "entry(word), context, paramc, params...", handle_jump_frame),
    (17, RET, "reg, count, regs...", handle_ret),
    (243, ADD, _THREE_REGISTERS, None),
    (230, SUB, _THREE_REGISTERS, None),
    (6, MUL, _THREE_REGISTERS, None),
    (55, DIV, _THREE_REGISTERS, None),
    (156, MOD, _THREE_REGISTERS, None),
    (65, OR, _THREE_REGISTERS, None),
    (37, AND, _THREE_REGISTERS, None),
    (117, XOR, _THREE_REGISTERS, None),
    (53, SHL, _THREE_REGISTERS, None),
    (149, SHR, _THREE_REGISTERS, None),
    (40, USHR, _THREE_REGISTERS, None),
    (20, LESS_THAN, _THREE_REGISTERS, None),
    (112, LESS_THAN, _THREE_REGISTERS, None),
    (247, LTE, _THREE_REGISTERS, None),
    (214, LTE, _THREE_REGISTERS, None),
    (78, EQUAL, _THREE_REGISTERS, None),
    (22, NOT_EQUAL, _THREE_REGISTERS, None),
    (161, STRICT_EQUAL, _THREE_REGISTERS, None),
    (220, STRICT_NOT_EQUAL, _THREE_REGISTERS, None),
    (93, JUMP, "target(word)", handle_jump),
    (39, JUMP_IF_FALSE, "cond, target(word)", handle_jump_if_false),
    (83, JUMP_IF_TRUE, "cond, target(word)", handle_jump_if_true),
    (115, TRY_CATCH, "dst, catch(word), finally(word), continue(word)", handle_try_catch),
    (5, THROW, "reg", handle_throw),
    (166, HALT, "", handle_halt),
)


def _build_base_table() -> Dict[int, InstructionSpec]:
    binary_handlers = {mnemonic: binary_handler(symbol) for mnemonic, symbol in BINARY_OPERATORS.items()}
    table: Dict[int, InstructionSpec] = {}
    for opcode, mnemonic, operands, handler in _CATALOG:
        if opcode in table:
            raise ValueError(f"opcode {opcode} catalogued twice")
        table[opcode] = InstructionSpec(
            opcode=opcode,
            mnemonic=mnemonic,
            operands=operands,
            handler=handler if handler is not None else binary_handlers[mnemonic],
        )
    return table


OPCODE_TABLE: Mapping[int, InstructionSpec] = MappingProxyType(_build_base_table())

MNEMONICS: Tuple[str, ...] = tuple(dict.fromkeys(spec.mnemonic for spec in OPCODE_TABLE.values()))


def spec_for_mnemonic(mnemonic: str, table: Mapping[int, InstructionSpec] = OPCODE_TABLE) -> InstructionSpec:
    """Return the first table entry implementing ``mnemonic`` (case-insensitive)."""

    wanted = " ".join(mnemonic.upper().replace("_", " ").split())
    for spec in table.values():
        if spec.mnemonic == wanted:
            return spec
    raise KeyError(mnemonic)


def build_opcode_table(aliases: Optional[Mapping[int, str]] = None) -> Mapping[int, InstructionSpec]:
    """Return a new immutable table extended with ``aliases`` (byte -> mnemonic).

    Callers are expected to have validated ``aliases``; see
    :mod:`vmtrace.vm.opcode_map`.
    """

    table = dict(OPCODE_TABLE)
    for opcode, mnemonic in (aliases or {}).items():
        base = spec_for_mnemonic(mnemonic)
        table[opcode] = InstructionSpec(
            opcode=opcode,
            mnemonic=base.mnemonic,
            operands=base.operands,
            handler=base.handler,
        )
    return MappingProxyType(table)


def lookup(opcode: int, offset: int, table: Mapping[int, InstructionSpec] = OPCODE_TABLE) -> InstructionSpec:
    spec = table.get(opcode)
    if spec is None:
        raise UnknownOpcodeError(opcode, offset)
    return spec


def describe_table(table: Mapping[int, InstructionSpec] = OPCODE_TABLE) -> Iterator[str]:
    """Yield one printable catalog row per opcode byte, sorted by byte."""

    for opcode in sorted(table):
        spec = table[opcode]
        yield f"{opcode:>3} 0x{opcode:02x}  {spec.mnemonic:<17} {spec.operands}".rstrip()


__all__ = [
    "BINARY_OPERATORS",
    "InstructionSpec",
    "MNEMONICS",
    "OPCODE_TABLE",
    "OpcodeHandler",
    "binary_handler",
    "build_opcode_table",
    "describe_table",
    "format_number",
    "lookup",
    "spec_for_mnemonic",
]
