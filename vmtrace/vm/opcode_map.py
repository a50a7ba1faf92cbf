"""Opcode alias maps.

Compiler builds occasionally emit the same instruction under a new opcode
byte.  Rather than skipping such bytes (which would desynchronise every later
read) the dispatch table is extended from a small JSON file::

    {"aliases": {"12": "ADD", "0x2a": "LESS THAN"}}

Keys are decimal or ``0x`` prefixed opcode bytes, values are catalog
mnemonics.  The built-in table is never modified; a fresh immutable table is
returned instead.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

from vmtrace.exceptions import OpcodeMapError
from vmtrace.vm.opcodes import OPCODE_TABLE, InstructionSpec, build_opcode_table, spec_for_mnemonic

LOGGER = logging.getLogger(__name__)


def _parse_opcode(token: object) -> Optional[int]:
    if isinstance(token, bool):
        return None
    if isinstance(token, int):
        return token
    text = str(token).strip()
    if not text:
        return None
    try:
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text, 10)
    except ValueError:
        return None


@dataclass
class OpcodeMap:
    """Extra opcode bytes aliased onto known mnemonics."""

    aliases: MutableMapping[int, str] = field(default_factory=dict)
    source: Optional[Path] = None

    def register(self, opcode: int, mnemonic: str) -> None:
        """Record ``opcode`` as another encoding of ``mnemonic``.

        Raises :class:`OpcodeMapError` for out-of-range bytes, unknown
        mnemonics, and bytes already bound to a different instruction.
        """

        if not 0 <= opcode <= 0xFF:
            raise OpcodeMapError(f"opcode {opcode} is not a single byte")
        try:
            canonical = spec_for_mnemonic(mnemonic).mnemonic
        except KeyError:
            raise OpcodeMapError(f"unknown mnemonic {mnemonic!r} for opcode {opcode}") from None

        existing = OPCODE_TABLE.get(opcode)
        if existing is not None and existing.mnemonic != canonical:
            raise OpcodeMapError(
                f"opcode {opcode} is already {existing.mnemonic!r}, cannot alias to {canonical!r}"
            )
        previous = self.aliases.get(opcode)
        if previous is not None and previous != canonical:
            raise OpcodeMapError(
                f"opcode {opcode} mapped twice ({previous!r} and {canonical!r})"
            )
        if existing is None:
            self.aliases[opcode] = canonical

    def build_table(self) -> Mapping[int, InstructionSpec]:
        return build_opcode_table(self.aliases)

    @classmethod
    def from_dict(cls, payload: Mapping[str, object], source: Optional[Path] = None) -> "OpcodeMap":
        raw = payload.get("aliases", payload) if isinstance(payload, Mapping) else None
        if not isinstance(raw, Mapping):
            raise OpcodeMapError("opcode map must be a JSON object of opcode -> mnemonic")
        opcode_map = cls(source=source)
        for key, value in raw.items():
            opcode = _parse_opcode(key)
            if opcode is None:
                raise OpcodeMapError(f"invalid opcode key {key!r}")
            if not isinstance(value, str):
                raise OpcodeMapError(f"mnemonic for opcode {key!r} must be a string")
            opcode_map.register(opcode, value)
        return opcode_map

    def as_dict(self) -> Dict[str, object]:
        return {"aliases": {str(op): mn for op, mn in sorted(self.aliases.items())}}


def load_opcode_map(path: Path) -> OpcodeMap:
    """Load an :class:`OpcodeMap` from ``path``."""

    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise OpcodeMapError(f"cannot read opcode map {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise OpcodeMapError(f"opcode map {path} is not valid JSON: {exc}") from exc
    opcode_map = OpcodeMap.from_dict(payload, source=path)
    LOGGER.debug("Loaded %d opcode alias(es) from %s", len(opcode_map.aliases), path)
    return opcode_map


__all__ = ["OpcodeMap", "load_opcode_map"]
