"""
Fixed-size chunking and hashing of blob content.

Large blob data can be split into chunks that are hashed individually, plus
a hash over the whole content, so that copies can be compared or
deduplicated chunk by chunk.

Example:
    >>> chunks = split_into_chunks(b"helloworld", chunk_size=5)
    >>> [c.data for c in chunks]
    [b'hello', b'world']
    >>> chunks.hash == hashlib.sha256(b"helloworld").digest()
    True
"""

from __future__ import annotations

import hashlib
import io
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import IO, Any

HashFactory = Callable[[], Any]
"""Zero-argument callable returning a hashlib-style object (``update``/``digest``)."""


@dataclass(frozen=True)
class Chunk:
    """A piece of content and the digest of that piece."""

    hash: bytes
    data: bytes

    @classmethod
    def from_data(cls, data: bytes, hash_factory: HashFactory = hashlib.sha256) -> Chunk:
        h = hash_factory()
        h.update(data)
        return cls(hash=h.digest(), data=data)

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Chunks:
    """
    Content split into chunks.

    Attributes:
        chunks: The chunks in content order; all but the last are full size
        hash: Digest of the whole content
    """

    chunks: tuple[Chunk, ...] = field(default_factory=tuple)
    hash: bytes = b""

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self.chunks)

    def __len__(self) -> int:
        return len(self.chunks)

    @property
    def data(self) -> bytes:
        """The reassembled content."""
        return b"".join(chunk.data for chunk in self.chunks)

    @property
    def size(self) -> int:
        """Total content length in bytes."""
        return sum(len(chunk) for chunk in self.chunks)


def _read_full(source: IO[bytes], size: int) -> bytes:
    """Read up to ``size`` bytes, looping over short reads until EOF."""
    parts: list[bytes] = []
    remaining = size
    while remaining > 0:
        part = source.read(remaining)
        if not part:
            break
        parts.append(part)
        remaining -= len(part)
    return b"".join(parts)


def split_into_chunks(
    source: bytes | bytearray | memoryview | IO[bytes],
    chunk_size: int,
    hash_factory: HashFactory = hashlib.sha256,
) -> Chunks:
    """
    Split content into ``chunk_size`` pieces and hash them.

    The last chunk holds whatever is left and may be shorter. Only the bytes
    actually read are hashed, so the overall hash equals the hash of the
    content itself.

    Args:
        source: Content as bytes or a binary stream (read to EOF, not closed)
        chunk_size: Size of each chunk in bytes
        hash_factory: Hash constructor, e.g. ``hashlib.sha256``

    Returns:
        The chunks and the digest of the whole content. Empty content gives
        no chunks and the digest of empty input.

    Raises:
        ValueError: If chunk_size is not positive
        OSError: If reading the stream fails
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}.")

    stream: IO[bytes]
    if isinstance(source, bytes | bytearray | memoryview):
        stream = io.BytesIO(bytes(source))
    else:
        stream = source

    overall = hash_factory()
    chunks: list[Chunk] = []
    while True:
        data = _read_full(stream, chunk_size)
        if not data:
            break
        overall.update(data)
        chunks.append(Chunk.from_data(data, hash_factory))
        if len(data) < chunk_size:
            break

    return Chunks(chunks=tuple(chunks), hash=overall.digest())


__all__ = [
    "Chunk",
    "Chunks",
    "HashFactory",
    "split_into_chunks",
]
