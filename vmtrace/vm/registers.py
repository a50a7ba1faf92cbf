from __future__ import annotations

from typing import Dict, Iterator, List, Optional

REGISTER_COUNT = 256

# Sentinel stored in slots that never received a tracked value.
UNKNOWN: Optional[str] = None


def register_name(reg: int) -> str:
    return f"reg{reg}"


class RegisterFile:
    """Last-write cache of string constants loaded into each register.

    This is not a data-flow analysis: writes overwrite unconditionally and
    nothing is merged at control-flow joins.  It only makes the trace more
    readable because the target compiler tends to load a constant right
    before its single use.
    """

    def __init__(self) -> None:
        self._slots: List[Optional[str]] = [UNKNOWN] * REGISTER_COUNT

    @staticmethod
    def _check(reg: int) -> int:
        if not 0 <= reg < REGISTER_COUNT:
            raise IndexError(f"register index {reg} outside 0..{REGISTER_COUNT - 1}")
        return reg

    def __len__(self) -> int:
        return REGISTER_COUNT

    def __getitem__(self, reg: int) -> Optional[str]:
        return self.read(reg)

    def __iter__(self) -> Iterator[Optional[str]]:
        return iter(self._slots)

    def read(self, reg: int) -> Optional[str]:
        return self._slots[self._check(reg)]

    def write(self, reg: int, value: str) -> None:
        self._slots[self._check(reg)] = value

    def is_known(self, reg: int) -> bool:
        return self.read(reg) is not UNKNOWN

    def render(self, reg: int) -> str:
        """Return the tracked value of ``reg`` or its raw ``regN`` name."""

        value = self.read(reg)
        if value is UNKNOWN:
            return register_name(reg)
        return value

    def known(self) -> Dict[int, str]:
        return {
            index: value for index, value in enumerate(self._slots) if value is not UNKNOWN
        }


__all__ = ["REGISTER_COUNT", "UNKNOWN", "RegisterFile", "register_name"]
