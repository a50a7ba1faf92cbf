"""Loading bytecode blobs from disk and undoing their base64 transport layer."""

from __future__ import annotations

import base64
import binascii
import logging
import sys
from pathlib import Path
from typing import Union

from vmtrace.exceptions import BytecodeDecodeError

LOGGER = logging.getLogger(__name__)

STDIN_MARKER = "-"


def decode_bytecode(text: Union[str, bytes]) -> bytes:
    """Strip all whitespace from ``text`` and decode it as standard base64.

    Blobs are commonly wrapped over several lines, so embedded whitespace is
    fine; anything outside the base64 alphabet or with broken padding raises
    :class:`BytecodeDecodeError`.
    """

    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BytecodeDecodeError(f"bytecode is not valid UTF-8 text: {exc}") from exc
    # str.split() also drops Unicode whitespace such as U+00A0 and U+2028.
    compact = "".join(text.split())
    try:
        stripped = compact.encode("ascii")
    except UnicodeEncodeError as exc:
        raise BytecodeDecodeError(f"bytecode contains non-ASCII text: {exc}") from exc
    try:
        data = base64.b64decode(stripped, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise BytecodeDecodeError(f"invalid base64 bytecode: {exc}") from exc
    LOGGER.debug("Decoded %d base64 characters into %d bytes", len(stripped), len(data))
    return data


def load_bytecode(path: Union[str, Path], *, raw: bool = False) -> bytes:
    """Read a bytecode blob from ``path`` (``-`` reads stdin).

    By default the file holds base64 text; ``raw=True`` takes the bytes as-is.
    """

    if str(path) == STDIN_MARKER:
        payload = sys.stdin.buffer.read()
        source = "<stdin>"
    else:
        payload = Path(path).read_bytes()
        source = str(path)
    LOGGER.debug("Read %d bytes from %s", len(payload), source)
    if raw:
        return payload
    return decode_bytecode(payload)


__all__ = ["STDIN_MARKER", "decode_bytecode", "load_bytecode"]
