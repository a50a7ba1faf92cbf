"""Command line front-end: ``python -m vmtrace INPUT``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence

from vmtrace.exceptions import DisassemblerError
from vmtrace.io.loader import load_bytecode
from vmtrace.logging_config import close_debug_logger, configure_debug_file_logger
from vmtrace.vm.disassembler import Disassembler
from vmtrace.vm.opcode_map import load_opcode_map
from vmtrace.vm.opcodes import OPCODE_TABLE, InstructionSpec, describe_table
from vmtrace.vm.trace import TraceLine

LOGGER = logging.getLogger(__name__)

# Only the decoding loggers go to --debug-log; CLI diagnostics stay on stderr.
DEBUG_LOGGER_NAME = "vmtrace.vm"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vmtrace",
        description="Disassemble register VM bytecode into an annotated instruction trace",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Path to the bytecode (base64 text unless --raw); '-' reads stdin",
    )
    parser.add_argument("--raw", action="store_true", help="Input file holds raw bytes, not base64")
    parser.add_argument(
        "--opcode-map",
        type=Path,
        help="JSON file aliasing extra opcode bytes to known mnemonics",
    )
    parser.add_argument("--json-out", type=Path, help="Optional JSON report path")
    parser.add_argument(
        "--no-timing",
        action="store_true",
        help="Do not print the elapsed time after the trace",
    )
    parser.add_argument(
        "--list-opcodes",
        action="store_true",
        help="Print the dispatch table and exit",
    )
    parser.add_argument("--debug-log", type=Path, help="Mirror debug logging to this file")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser


def _write_report(path: Path, disasm: Disassembler) -> None:
    payload = {
        "size": len(disasm.reader),
        "instructions": [line.as_dict() for line in disasm.trace],
        "registers": {str(reg): value for reg, value in disasm.registers.known().items()},
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    LOGGER.info("Wrote JSON report to %s", path)


def _print_line(line: TraceLine) -> None:
    print(line.format(), flush=True)


def run(args: argparse.Namespace, table: Mapping[int, InstructionSpec]) -> int:
    start = time.perf_counter()
    try:
        bytecode = load_bytecode(args.input, raw=args.raw)
    except OSError as exc:
        LOGGER.error("cannot read %s: %s", args.input, exc)
        return 1
    except DisassemblerError as exc:
        LOGGER.error("%s", exc)
        return 1

    disasm = Disassembler(bytecode, opcode_table=table, emit=_print_line)
    status = 0
    try:
        disasm.execute()
    except DisassemblerError as exc:
        LOGGER.error("disassembly aborted after %d instruction(s): %s", len(disasm.trace), exc)
        status = 1
    elapsed = time.perf_counter() - start

    if args.json_out:
        try:
            _write_report(args.json_out, disasm)
        except OSError as exc:
            LOGGER.error("cannot write JSON report %s: %s", args.json_out, exc)
            status = 1

    if status == 0 and not args.no_timing:
        print(f"disassemble took: {elapsed:.6f}s")
    return status


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    debug_logger = None
    if args.debug_log:
        debug_logger = configure_debug_file_logger(DEBUG_LOGGER_NAME, args.debug_log)

    try:
        table = OPCODE_TABLE
        if args.opcode_map:
            try:
                table = load_opcode_map(args.opcode_map).build_table()
            except DisassemblerError as exc:
                LOGGER.error("%s", exc)
                return 1

        if args.list_opcodes:
            for row in describe_table(table):
                print(row)
            return 0

        if args.input is None:
            parser.error("the input argument is required unless --list-opcodes is given")

        return run(args, table)
    finally:
        if debug_logger is not None:
            close_debug_logger(debug_logger)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
