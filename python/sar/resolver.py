"""
Resolver - Maps the selector's answer back to the streamed item.
"""

import logging

from .errors import AlreadyResolved, IndexOutOfRange, SarError
from .models import Item
from .stream import MirrorSequence


logger = logging.getLogger(__name__)


class SelectionResolver:
    """
    Replays a sealed MirrorSequence to find the item at a stream index.

    Only one resolution is allowed per run.
    """

    def __init__(self, mirror: MirrorSequence):
        self.mirror = mirror
        self._resolved = False

    def resolve(self, index: int) -> Item:
        """
        Return the item behind the index-th streamed line (zero-based).

        Raises:
            IndexOutOfRange: Fewer than index + 1 lines were streamed
            AlreadyResolved: resolve() was called before
        """
        if self._resolved:
            raise AlreadyResolved("A selection was already resolved for this run")
        if not self.mirror.sealed:
            raise SarError("Mirror sequence is still being written")

        available = len(self.mirror)
        if index < 0 or index >= available:
            raise IndexOutOfRange(index, available)

        self._resolved = True
        for position, item in enumerate(self.mirror):
            if position == index:
                logger.debug(f"Resolved index {index} to {item.source_path}")
                return item

        # len() and iteration disagree only if the mirror changed underneath
        raise IndexOutOfRange(index, len(self.mirror))
