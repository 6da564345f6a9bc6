"""Per-channel byte limits between a process pipe and its accumulator."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from rawexec.lib.exec.buffer import BufferAccumulator

READ_CHUNK_SIZE = 64 * 1024


class StreamOverflowError(Exception):
    """Raised (as an event, not thrown) when a channel exceeds `max_buffer`."""

    def __init__(self, channel: str, *, max_buffer: int, received: int) -> None:
        self.channel = channel
        self.max_buffer = max_buffer
        self.received = received
        super().__init__(f"{channel} maxBuffer exceeded")


OverflowHandler = Callable[[StreamOverflowError], None]


class StreamLimiter:
    """Counts bytes on one channel and forwards chunks that fit the limit.

    The chunk that pushes the running count past `max_buffer` is counted but
    not stored; the overflow handler fires once and the limiter then
    rejects everything else.
    """

    def __init__(
        self,
        channel: str,
        *,
        max_buffer: int,
        on_overflow: OverflowHandler,
        buffer: BufferAccumulator | None = None,
    ) -> None:
        self.channel = channel
        self.max_buffer = max_buffer
        self.buffer = buffer if buffer is not None else BufferAccumulator()
        self._on_overflow = on_overflow
        self._received = 0
        self._overflowed = False
        self._closed = False

    @property
    def received(self) -> int:
        return self._received

    @property
    def overflowed(self) -> bool:
        return self._overflowed

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def feed(self, chunk: bytes) -> bool:
        """Account for one chunk; return whether it was stored."""

        if self._closed:
            return False

        self._received += len(chunk)
        if self._received > self.max_buffer:
            self._overflowed = True
            self._closed = True
            self._on_overflow(
                StreamOverflowError(
                    self.channel,
                    max_buffer=self.max_buffer,
                    received=self._received,
                )
            )
            return False

        self.buffer.append(chunk)
        return True

    async def pump(
        self,
        reader: asyncio.StreamReader,
        *,
        chunk_size: int = READ_CHUNK_SIZE,
    ) -> None:
        """Read `reader` to EOF, feeding each chunk until the limiter closes."""

        while not self._closed:
            chunk = await reader.read(chunk_size)
            if not chunk:
                return
            if not self.feed(chunk):
                return
