"""Input helpers for bytecode blobs."""

from vmtrace.io.loader import decode_bytecode, load_bytecode

__all__ = ["decode_bytecode", "load_bytecode"]
