"""Bounded outbound message queue between webhook handlers and the IRC session."""

from __future__ import annotations

import asyncio
from collections import deque

from raccoon.models import OutboundMessage
from raccoon.utils.logging import get_logger

log = get_logger(__name__)


class OutboundQueue:
    """Many producers, one consumer.

    ``put_nowait`` never blocks: once ``max_size`` messages are waiting the
    newest message is rejected. ``requeue`` puts an undelivered message
    back at the head and may exceed the bound by the messages in flight.
    """

    def __init__(self, max_size: int = 256) -> None:
        self._max_size = max_size
        self._items: deque[OutboundMessage] = deque()
        self._not_empty = asyncio.Event()
        self.rejected = 0

    def __len__(self) -> int:
        return len(self._items)

    @property
    def max_size(self) -> int:
        return self._max_size

    def full(self) -> bool:
        return len(self._items) >= self._max_size

    def put_nowait(self, message: OutboundMessage) -> bool:
        if self.full():
            self.rejected += 1
            log.warning(
                "outbound_queue_full",
                channel=message.channel,
                max_size=self._max_size,
                rejected_total=self.rejected,
            )
            return False
        self._items.append(message)
        self._not_empty.set()
        return True

    def requeue(self, message: OutboundMessage) -> None:
        self._items.appendleft(message)
        self._not_empty.set()

    async def get(self) -> OutboundMessage:
        while not self._items:
            self._not_empty.clear()
            await self._not_empty.wait()
        return self._items.popleft()

    def drain(self) -> list[OutboundMessage]:
        items = list(self._items)
        self._items.clear()
        return items
