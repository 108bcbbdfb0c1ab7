"""Turn decoded webhook events into queued IRC messages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from raccoon.config import ChannelConfig
from raccoon.core.formatter import format_event
from raccoon.core.queue import OutboundQueue
from raccoon.models import OutboundMessage
from raccoon.utils.logging import get_logger
from raccoon.webhooks.models import WebhookEvent

log = get_logger(__name__)


@dataclass
class DispatchResult:
    enqueued: int = 0
    dropped: int = 0


class Dispatcher:
    """Routes each formatted line to every channel subscribed to the event kind."""

    def __init__(
        self,
        channels: Iterable[ChannelConfig],
        queue: OutboundQueue,
        max_commit_lines: int = 0,
    ) -> None:
        self._channels = tuple(channels)
        self._queue = queue
        self._max_commit_lines = max_commit_lines

    def targets(self, event: WebhookEvent) -> list[ChannelConfig]:
        return [c for c in self._channels if c.accepts(event.kind)]

    def route(self, event: WebhookEvent) -> list[OutboundMessage]:
        targets = self.targets(event)
        if not targets:
            return []
        lines = format_event(event, max_commit_lines=self._max_commit_lines)
        return [
            OutboundMessage(channel=channel.name, text=line)
            for line in lines
            for channel in targets
        ]

    def dispatch(self, event: WebhookEvent) -> DispatchResult:
        result = DispatchResult()
        messages = self.route(event)
        if not messages:
            log.info("event_not_subscribed", kind=event.kind)
            return result

        for message in messages:
            if self._queue.put_nowait(message):
                result.enqueued += 1
            else:
                result.dropped += 1

        log.info(
            "event_dispatched",
            kind=event.kind,
            enqueued=result.enqueued,
            dropped=result.dropped,
        )
        return result
