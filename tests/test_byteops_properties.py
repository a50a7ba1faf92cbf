from __future__ import annotations

import math
import struct

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from vmtrace.byteops import ByteReader, decode_double, xor_encode
from vmtrace.exceptions import TruncatedReadError

latin1_text = st.text(alphabet=st.characters(min_codepoint=0, max_codepoint=255), max_size=300)


@settings(max_examples=200, deadline=None)
@given(text=latin1_text)
def test_xor_round_trip(text: str) -> None:
    encoded = xor_encode(text)
    reader = ByteReader(len(encoded).to_bytes(2, "big") + encoded)
    assert reader.read_obfuscated_string() == text
    assert reader.at_end


@settings(max_examples=300, deadline=None)
@given(value=st.floats(allow_nan=False))
def test_decode_double_agrees_with_struct(value: float) -> None:
    decoded = decode_double(struct.pack(">d", value))
    if value == 0.0:
        assert decoded == 0.0
    else:
        assert decoded == value


@settings(max_examples=200, deadline=None)
@given(raw=st.binary(min_size=8, max_size=8))
def test_decode_double_never_raises(raw: bytes) -> None:
    decoded = decode_double(raw)
    (expected,) = struct.unpack(">d", raw)
    if math.isnan(expected):
        assert math.isnan(decoded)
    elif expected == 0.0:
        assert decoded == 0.0
    else:
        assert decoded == expected


@settings(max_examples=200, deadline=None)
@given(data=st.binary(max_size=64), size=st.integers(min_value=0, max_value=80))
def test_register_list_consumes_exactly_count(data: bytes, size: int) -> None:
    reader = ByteReader(data)
    if size <= len(data):
        assert reader.read_register_list(size) == list(data[:size])
        assert reader.offset == size
    else:
        with pytest.raises(TruncatedReadError):
            reader.read_register_list(size)
        assert reader.offset == 0
