"""Ordered byte-chunk accumulation for one output channel."""

from __future__ import annotations

ENCODING = "utf-8"


class BufferAccumulator:
    """Append-only chunk store with a running byte count.

    Chunks are kept raw and only decoded by `materialize()`, so multi-byte
    sequences split across reads are never decoded half-way.
    """

    __slots__ = ("_chunks", "_length")

    def __init__(self) -> None:
        self._chunks: list[bytes] = []
        self._length = 0

    def __len__(self) -> int:
        return self._length

    @property
    def chunks(self) -> tuple[bytes, ...]:
        return tuple(self._chunks)

    def append(self, chunk: bytes) -> None:
        self._chunks.append(bytes(chunk))
        self._length += len(chunk)

    def materialize(self) -> str:
        return b"".join(self._chunks).decode(ENCODING, errors="replace")
