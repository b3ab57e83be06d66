"""BLAKE3 hashing helpers for content addressing."""

from __future__ import annotations

from collections.abc import Iterator
from typing import BinaryIO

from blake3 import blake3

CHUNK_SIZE = 1 << 20  # 1 MiB


def blake3_digest(data: bytes) -> bytes:
    """Return the 32-byte BLAKE3 digest of raw bytes."""
    return blake3(data).digest()


def iter_chunks(source: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield successive chunks from an open binary file handle."""
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return
        yield chunk
