"""Raccoon entry point: wires the webhook server to the IRC session."""

from __future__ import annotations

import asyncio
import signal
import sys

import click

from raccoon import __version__
from raccoon.config import Settings, load_settings
from raccoon.core.dispatcher import Dispatcher
from raccoon.core.queue import OutboundQueue
from raccoon.errors import ConfigError
from raccoon.transports.base import Connector, open_tls_connection
from raccoon.transports.irc_transport import IrcSession
from raccoon.utils.logging import get_logger, setup_logging
from raccoon.webhooks.server import WebhookServer

log = get_logger(__name__)


class Raccoon:
    """Main application orchestrator."""

    def __init__(self, settings: Settings, connector: Connector = open_tls_connection) -> None:
        self.settings = settings

        self.queue = OutboundQueue(max_size=settings.queue.max_size)
        self.session = IrcSession(settings.irc, self.queue, connector=connector)
        self.dispatcher = Dispatcher(
            settings.irc.channels,
            self.queue,
            max_commit_lines=settings.format.max_commit_lines,
        )
        self.server = WebhookServer(settings.webhook, settings.service, self.dispatcher)

    async def start(self, bind: str | None = None, port: int | None = None) -> None:
        log.info(
            "raccoon_starting",
            version=__version__,
            irc_server=self.settings.irc.server,
            channels=[c.name for c in self.settings.irc.channels],
        )
        # A bind failure must abort before any IRC connection is made
        await self.server.start(bind=bind, port=port)
        await self.session.start()
        log.info("raccoon_ready")

    async def stop(self) -> None:
        log.info("raccoon_stopping")
        await self.server.stop()
        await self.session.stop()
        dropped = len(self.queue)
        if dropped:
            log.warning("outbound_messages_discarded", count=dropped)
        log.info("raccoon_stopped")


async def run(settings: Settings, bind: str | None = None, port: int | None = None) -> None:
    app = Raccoon(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await app.start(bind=bind, port=port)

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


def _secrets(settings: Settings) -> list[str | None]:
    irc_cfg = settings.irc
    return [
        settings.webhook.secret,
        irc_cfg.server_password,
        irc_cfg.nick_password,
        *(channel.key for channel in irc_cfg.channels),
    ]


@click.command()
@click.option("--config", "-c", "config_path", default=None, help="Config file (overrides the search path)")
@click.option("--bind", "-b", default=None, help="Address to bind the webhook listener to")
@click.option("--port", "-p", type=click.IntRange(1, 65535), default=None, help="Port for the webhook listener")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.version_option(__version__, prog_name="raccoon")
def cli(config_path: str | None, bind: str | None, port: int | None, log_level: str | None) -> None:
    """Relay GitLab webhooks to IRC channels."""
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        setup_logging(level=log_level or "INFO")
        log.error("config_invalid", error=str(exc))
        sys.exit(1)

    setup_logging(
        level=log_level or settings.log_level,
        json_output=settings.log_json,
        secrets=_secrets(settings),
    )

    try:
        asyncio.run(run(settings, bind=bind, port=port))
    except OSError as exc:
        log.error("webhook_listener_failed", error=str(exc))
        sys.exit(1)


if __name__ == "__main__":
    cli()
