from __future__ import annotations

import base64
import io
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

from vmtrace.exceptions import BytecodeDecodeError
from vmtrace.io.loader import decode_bytecode, load_bytecode


def test_decode_strips_all_whitespace() -> None:
    payload = bytes(range(40))
    encoded = base64.b64encode(payload).decode("ascii")
    messy = " \t".join(encoded[i : i + 7] for i in range(0, len(encoded), 7)) + "\r\n"
    assert decode_bytecode(messy) == payload
    assert decode_bytecode(messy.encode("ascii")) == payload


@pytest.mark.parametrize("text", ["fA=", "fAA*", "$$$$", "ü123"])
def test_decode_rejects_malformed_input(text: str) -> None:
    with pytest.raises(BytecodeDecodeError):
        decode_bytecode(text)


def test_decode_strips_unicode_whitespace() -> None:
    assert decode_bytecode("fA\xa0AF\u2028") == bytes([124, 0, 5])
    assert decode_bytecode("fA\xa0AF\u2028".encode("utf-8")) == bytes([124, 0, 5])


def test_load_base64_file_with_unicode_line_breaks(tmp_path: Path) -> None:
    path = tmp_path / "bytecode.txt"
    path.write_text("fA\u2028AF\xa0\n", encoding="utf-8")
    assert load_bytecode(path) == bytes([124, 0, 5])


def test_decode_rejects_invalid_utf8_bytes() -> None:
    with pytest.raises(BytecodeDecodeError):
        decode_bytecode(b"fA\xffAF")


def test_decode_empty_input() -> None:
    assert decode_bytecode("") == b""


def test_load_base64_file(tmp_path: Path) -> None:
    path = tmp_path / "bytecode.txt"
    path.write_text("fAAF\n", encoding="ascii")
    assert load_bytecode(path) == bytes([124, 0, 5])


def test_load_raw_file(tmp_path: Path) -> None:
    path = tmp_path / "bytecode.bin"
    path.write_bytes(bytes([124, 0, 5]))
    assert load_bytecode(path, raw=True) == bytes([124, 0, 5])


def test_load_from_stdin(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = SimpleNamespace(buffer=io.BytesIO(b"fAAF"))
    monkeypatch.setattr(sys, "stdin", fake)
    assert load_bytecode("-") == bytes([124, 0, 5])


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        load_bytecode(tmp_path / "absent.txt")
