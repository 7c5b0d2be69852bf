"""
Stream - Byte stream adaptor between the record channel and the selector.

The selector pulls bytes; the pipeline pushes items. StreamAdaptor drains
the channel on demand, serializes every item to its wire line and, in the
same step, appends the item to a MirrorSequence. The n-th entry of the
mirror is therefore always the item behind the n-th line of the stream,
which is what lets a selector-reported index be mapped back to a record.
"""

import io
import logging
import threading
from typing import Iterator, List, Optional

from .errors import ChannelClosed
from .models import Item, encode_wire_line
from .pipeline import RecordChannel


logger = logging.getLogger(__name__)


# Upper bound of items serialized per refill
_DRAIN_LIMIT = 1024


class MirrorSequence:
    """
    Append-only record of every item handed out, in stream order.

    Written by exactly one StreamAdaptor. It is sealed when the adaptor is
    closed; only a sealed mirror may be read by the resolver.
    """

    def __init__(self):
        self._items: List[Item] = []
        self._sealed = threading.Event()

    def append(self, item: Item) -> None:
        if self._sealed.is_set():
            raise ChannelClosed("Mirror sequence is sealed")
        self._items.append(item)

    def seal(self) -> None:
        self._sealed.set()

    @property
    def sealed(self) -> bool:
        return self._sealed.is_set()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items)


class StreamAdaptor(io.RawIOBase):
    """
    Pull-based reader over a RecordChannel.

    Reads block until at least one item is available, then serve bytes
    from an internal buffer with a cursor, so callers may read in chunks
    of any size. Once the channel is exhausted reads return b"".

    The buffer only ever holds the items of the latest refill; its size is
    bounded by the channel size and the drain limit.
    """

    def __init__(self, channel: RecordChannel, mirror: Optional[MirrorSequence] = None):
        super().__init__()
        self.channel = channel
        self.mirror = mirror if mirror is not None else MirrorSequence()
        self.items_streamed = 0

        self._buffer = b""
        self._cursor = 0
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        """Copy up to len(b) buffered bytes into b. Returns 0 at end of stream."""
        available = self.peek_available()
        n = min(len(b), len(available))
        if n:
            memoryview(b).cast("B")[:n] = available[:n]
            self._cursor += n
        return n

    def peek_available(self) -> memoryview:
        """
        Buffered bytes not yet consumed, without copying.

        Blocks until data is available; an empty view means end of stream.
        The view stays valid after later refills.
        """
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        self._fill()
        return memoryview(self._buffer)[self._cursor:]

    def advance(self, n: int) -> None:
        """Mark n bytes returned by peek_available() as consumed."""
        pending = len(self._buffer) - self._cursor
        if n < 0 or n > pending:
            raise ValueError(f"Cannot advance {n} bytes, {pending} pending")
        self._cursor += n

    def close(self) -> None:
        """Close the stream and seal the mirror sequence."""
        if not self.closed:
            self.mirror.seal()
            logger.debug(f"Stream closed after {self.items_streamed} items")
        super().close()

    def _fill(self) -> None:
        if self._cursor < len(self._buffer) or self._eof:
            return

        item = self.channel.recv()
        if item is None:
            self._eof = True
            self._buffer = b""
            self._cursor = 0
            return

        parts = [self._push(item)]
        while len(parts) < _DRAIN_LIMIT:
            item = self.channel.try_recv()
            if item is None:
                break
            parts.append(self._push(item))

        self._buffer = b"".join(parts)
        self._cursor = 0

    def _push(self, item: Item) -> bytes:
        # Serialize and mirror in one step, before looking at the next item
        line = encode_wire_line(item)
        self.mirror.append(item)
        self.items_streamed += 1
        return line
