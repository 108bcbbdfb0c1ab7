"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

from aiohttp import web

from raccoon.config import ServiceConfig, WebhookConfig
from raccoon.core.dispatcher import Dispatcher
from raccoon.errors import AuthError, PayloadError, UnsupportedEventError
from raccoon.utils.logging import get_logger
from raccoon.webhooks.handlers import EVENT_HEADER, SIGNATURE_HEADER, TOKEN_HEADER, handle

log = get_logger(__name__)


class WebhookServer:
    """Receives GitLab webhooks and hands accepted events to the dispatcher."""

    def __init__(
        self,
        config: WebhookConfig,
        service: ServiceConfig,
        dispatcher: Dispatcher,
    ) -> None:
        self._config = config
        self._service = service
        self._dispatcher = dispatcher
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, bind: str | None = None, port: int | None = None) -> None:
        """Start listening. Raises OSError when the address can't be bound."""
        bind = bind or self._service.bind
        port = port or self._service.port
        app = self.build_app()
        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, bind, port)
        try:
            await site.start()
        except OSError:
            await self.stop()
            raise
        log.info("webhook_server_started", bind=bind, port=port, path=self._config.path)

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(self._config.path, self._handle_webhook)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        body = await request.read()
        header_name = TOKEN_HEADER if self._config.signature_scheme == "token" else SIGNATURE_HEADER
        event_header = request.headers.get(EVENT_HEADER)

        try:
            event = handle(
                body,
                request.headers.get(header_name),
                self._config.secret,
                event_header=event_header,
                scheme=self._config.signature_scheme,
            )
        except AuthError:
            log.warning("webhook_unauthorized", remote=request.remote, header=header_name)
            return web.Response(status=401, text="Invalid signature")
        except UnsupportedEventError as exc:
            log.info("webhook_unsupported_event", kind=exc.kind, event_header=event_header)
            if self._config.accept_unsupported:
                return web.Response(status=200, text="Ignored")
            return web.Response(status=400, text=f"Unsupported event kind: {exc.kind}")
        except PayloadError as exc:
            log.warning("webhook_bad_payload", error=str(exc), event_header=event_header)
            return web.Response(status=400, text=f"Invalid payload: {exc}")

        result = self._dispatcher.dispatch(event)

        log.info(
            "webhook_received",
            kind=event.kind,
            repository=event.repository.name,
            enqueued=result.enqueued,
            dropped=result.dropped,
        )

        return web.Response(status=200, text="OK")
