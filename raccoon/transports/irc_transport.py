"""IRC session: TLS connection, registration, channel joins, and delivery."""

from __future__ import annotations

import asyncio
import time
from enum import Enum

from raccoon.config import IrcConfig
from raccoon.core.backoff import Backoff
from raccoon.core.queue import OutboundQueue
from raccoon.core.throttle import Clock, FloodThrottle, Sleeper
from raccoon.errors import ChatConnectionError, ChatProtocolError
from raccoon.models import OutboundMessage
from raccoon.transports import irc_protocol as irc
from raccoon.transports.base import Connector, LineConnection, open_tls_connection
from raccoon.utils.logging import get_logger

log = get_logger(__name__)

PING_TOKEN = "raccoon"
QUIT_MESSAGE = "Raccoon shutting down"


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    REGISTERING = "registering"
    JOINING = "joining"
    READY = "ready"
    STOPPED = "stopped"


def alternate_nick(base: str, attempt: int) -> str:
    """Nickname to try after ``attempt`` collisions: ``base_``, ``base__``, ..."""
    return base + "_" * attempt


class IrcSession:
    """Owns the single IRC connection and drains the outbound queue into it.

    ``run()`` loops forever: connect, register, join, deliver, and on any
    failure tear down and reconnect after an exponential backoff delay. Only
    this object reads from or writes to the connection.
    """

    def __init__(
        self,
        config: IrcConfig,
        queue: OutboundQueue,
        *,
        connector: Connector = open_tls_connection,
        sleep: Sleeper = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self.queue = queue
        self._config = config
        self._connector = connector
        self._sleep = sleep
        self._backoff = Backoff(config.backoff)
        self._throttle = FloodThrottle(config.flood, clock=clock, sleep=sleep)
        self._conn: LineConnection | None = None
        self._send_lock = asyncio.Lock()
        self._state = SessionState.DISCONNECTED
        self._nickname = config.nickname
        self._joined: set[str] = set()
        # Configured channels with a JOIN sent but not yet confirmed
        self._pending_joins: set[str] = set()
        self._held: dict[str, list[OutboundMessage]] = {}
        self._ready = asyncio.Event()
        self._running = False
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def nickname(self) -> str:
        return self._nickname

    @property
    def joined_channels(self) -> frozenset[str]:
        """Lower-cased names of the channels we are currently in."""
        return frozenset(self._joined)

    @property
    def ready(self) -> asyncio.Event:
        return self._ready

    async def wait_ready(self, timeout: float | None = None) -> None:
        await asyncio.wait_for(self._ready.wait(), timeout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self.run(), name="irc-session")
        log.info(
            "irc_session_starting",
            server=self._config.server,
            port=self._config.port,
            nickname=self._config.nickname,
        )

    async def stop(self) -> None:
        self._running = False
        if self._state is SessionState.READY and self._conn is not None:
            try:
                await self._send(irc.quit_(QUIT_MESSAGE))
            except ChatConnectionError:
                pass
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._disconnect()
        self._set_state(SessionState.STOPPED)
        log.info("irc_session_stopped", pending=len(self.queue))

    async def run(self) -> None:
        """Keep a session alive until stop() is called. Never raises on chat errors."""
        self._running = True
        while self._running:
            try:
                await self.connect_once()
                await self._serve()
            except ChatProtocolError as exc:
                log.error("irc_protocol_error", error=str(exc), nickname=self._nickname)
            except (ChatConnectionError, OSError, asyncio.TimeoutError) as exc:
                log.warning(
                    "irc_connection_lost",
                    error=str(exc) or type(exc).__name__,
                    state=self._state.value,
                )
            except Exception:
                log.exception("irc_session_error", state=self._state.value)
            finally:
                await self._disconnect()

            if not self._running:
                break
            delay = self._backoff.next_delay()
            log.info("irc_reconnect_scheduled", delay=delay, attempt=self._backoff.attempt)
            await self._sleep(delay)

    async def connect_once(self) -> None:
        """Connect, register and join. Returns once the session is READY."""
        cfg = self._config

        self._set_state(SessionState.CONNECTING)
        try:
            self._conn = await asyncio.wait_for(
                self._connector(cfg.server, cfg.port), cfg.connect_timeout
            )
        except asyncio.TimeoutError:
            raise ChatConnectionError(f"connecting to {cfg.server}:{cfg.port} timed out") from None
        except OSError as exc:
            raise ChatConnectionError(f"cannot connect to {cfg.server}:{cfg.port}: {exc}") from exc
        log.info("irc_connected", server=cfg.server, port=cfg.port)

        self._set_state(SessionState.AUTHENTICATING)
        if cfg.server_password:
            await self._send(irc.password(cfg.server_password), sensitive=True)

        self._set_state(SessionState.REGISTERING)
        await self._register()
        if cfg.nick_password:
            await self._identify()

        self._set_state(SessionState.JOINING)
        await self._join_channels()

        self._set_state(SessionState.READY)
        self._backoff.reset()
        self._ready.set()
        log.info(
            "irc_ready",
            nickname=self._nickname,
            channels=sorted(self._joined),
            queued=len(self.queue),
        )

    # ------------------------------------------------------------------
    # Registration and joins
    # ------------------------------------------------------------------

    async def _register(self) -> None:
        cfg = self._config
        loop = asyncio.get_running_loop()
        deadline = loop.time() + cfg.register_timeout
        retries = 0

        self._nickname = cfg.nickname
        await self._send(irc.nick(self._nickname))
        await self._send(irc.user(cfg.username or cfg.nickname, cfg.realname))

        while True:
            try:
                msg = await self._read_message(deadline)
            except asyncio.TimeoutError:
                raise ChatConnectionError("timed out waiting for registration") from None

            if msg.command == irc.RPL_WELCOME:
                self._nickname = msg.param(0, self._nickname)
                log.info("irc_registered", nickname=self._nickname)
                return

            if msg.command in irc.NICK_IN_USE:
                if retries >= cfg.max_nick_retries:
                    raise ChatProtocolError(
                        f"nickname {cfg.nickname!r} still unavailable after {retries} retries"
                    )
                retries += 1
                taken = self._nickname
                self._nickname = alternate_nick(cfg.nickname, retries)
                log.warning("irc_nick_in_use", nickname=taken, retry_with=self._nickname)
                await self._send(irc.nick(self._nickname))
            elif msg.command == irc.ERR_ERRONEUSNICKNAME:
                raise ChatProtocolError(f"server rejected nickname {self._nickname!r}")
            elif msg.command in (irc.ERR_PASSWDMISMATCH, irc.ERR_YOUREBANNEDCREEP):
                raise ChatProtocolError(f"server refused registration: {msg.trailing}")

    async def _identify(self) -> None:
        cfg = self._config
        # A mutated nick has to name the account explicitly
        if self._nickname.lower() == cfg.nickname.lower():
            text = f"IDENTIFY {cfg.nick_password}"
        else:
            text = f"IDENTIFY {cfg.nickname} {cfg.nick_password}"
        await self._send(irc.privmsg("NickServ", text), sensitive=True)
        log.info("irc_identify_sent", account=cfg.nickname)

    async def _join_channels(self) -> None:
        cfg = self._config
        loop = asyncio.get_running_loop()
        self._pending_joins = {channel.name.lower() for channel in cfg.channels}

        for channel in cfg.channels:
            await self._send(irc.join(channel.name, channel.key), sensitive=bool(channel.key))

        deadline = loop.time() + cfg.join_timeout
        while self._pending_joins:
            try:
                msg = await self._read_message(deadline)
            except asyncio.TimeoutError:
                # Still pending; a late confirmation releases held messages
                log.warning("irc_join_timeout", channels=sorted(self._pending_joins))
                break
            await self._handle_message(msg)

        if not self._joined:
            log.warning("irc_no_channels_joined")

    # ------------------------------------------------------------------
    # READY: reader and writer
    # ------------------------------------------------------------------

    async def _serve(self) -> None:
        reader = asyncio.create_task(self._reader_loop(), name="irc-reader")
        writer = asyncio.create_task(self._writer_loop(), name="irc-writer")
        try:
            done, _ = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (reader, writer):
                task.cancel()
            await asyncio.gather(reader, writer, return_exceptions=True)

        for task in done:
            task.result()
        raise ChatConnectionError("session ended unexpectedly")

    async def _reader_loop(self) -> None:
        cfg = self._config
        loop = asyncio.get_running_loop()
        awaiting_pong = False
        while True:
            wait = cfg.ping_timeout if awaiting_pong else cfg.ping_interval
            try:
                msg = await self._read_message(loop.time() + wait)
            except asyncio.TimeoutError:
                if awaiting_pong:
                    raise ChatConnectionError("keep-alive timed out") from None
                await self._send(irc.ping(PING_TOKEN))
                awaiting_pong = True
                continue
            awaiting_pong = False
            await self._handle_message(msg)

    async def _writer_loop(self) -> None:
        while True:
            message = await self.queue.get()
            try:
                channel = message.channel.lower()
                if channel not in self._joined:
                    if channel in self._pending_joins:
                        self._held.setdefault(channel, []).append(message)
                        log.info("outbound_held", channel=message.channel)
                    else:
                        log.warning("outbound_dropped_not_joined", channel=message.channel)
                    continue
                try:
                    line = irc.privmsg(message.channel, message.text)
                except ValueError as exc:
                    log.error("outbound_dropped_invalid", channel=message.channel, error=str(exc))
                    continue
                await self._throttle.acquire()
                await self._send(line)
            except (Exception, asyncio.CancelledError):
                # Not delivered: keep it for the next session
                self.queue.requeue(message)
                raise

    async def _handle_message(self, msg: irc.IrcMessage) -> None:
        own = msg.nick.lower() == self._nickname.lower()

        if msg.command == "JOIN" and own:
            channel = msg.param(0).lower()
            self._joined.add(channel)
            self._pending_joins.discard(channel)
            log.info("irc_joined", channel=channel)
            self._release_held(channel)
        elif msg.command in irc.JOIN_ERRORS:
            channel = msg.param(1).lower()
            if channel in self._pending_joins:
                self._pending_joins.discard(channel)
                log.warning("irc_join_failed", channel=channel, code=msg.command, reason=msg.trailing)
                dropped = self._held.pop(channel, [])
                if dropped:
                    log.warning("outbound_dropped_not_joined", channel=channel, count=len(dropped))
        elif msg.command == "PART" and own:
            self._joined.discard(msg.param(0).lower())
            log.info("irc_parted", channel=msg.param(0))
        elif msg.command == "KICK" and msg.param(1).lower() == self._nickname.lower():
            channel = msg.param(0).lower()
            self._joined.discard(channel)
            log.warning("irc_kicked", channel=channel, by=msg.nick, reason=msg.param(2))
            for configured in self._config.channels:
                if configured.name.lower() == channel:
                    self._pending_joins.add(channel)
                    await self._send(irc.join(configured.name, configured.key), sensitive=bool(configured.key))
        elif msg.command == "NICK" and own:
            self._nickname = msg.param(0)
            log.info("irc_nick_changed", nickname=self._nickname)
        elif msg.command == "NOTICE" and "!" not in msg.prefix:
            log.debug("irc_server_notice", text=msg.param(1))

    def _release_held(self, channel: str) -> None:
        """Put held messages for ``channel`` back at the head of the queue, in order."""
        held = self._held.pop(channel, [])
        for message in reversed(held):
            self.queue.requeue(message)
        if held:
            log.info("outbound_released", channel=channel, count=len(held))

    # ------------------------------------------------------------------
    # Connection I/O
    # ------------------------------------------------------------------

    async def _read_message(self, deadline: float) -> irc.IrcMessage:
        """Read the next parseable message before ``deadline`` (loop time).

        PINGs are answered here; ERROR ends the session.
        """
        if self._conn is None:
            raise ChatConnectionError("not connected")
        loop = asyncio.get_running_loop()
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise asyncio.TimeoutError()
            line = await asyncio.wait_for(self._conn.read_line(), remaining)
            if not line:
                continue
            try:
                msg = irc.parse_line(line)
            except ValueError:
                log.debug("irc_unparseable_line", line=line[:200])
                continue
            log.debug("irc_recv", line=line)

            if msg.command == "PING":
                await self._send(irc.pong(msg.param(0)))
            elif msg.command == "ERROR":
                raise ChatConnectionError(f"server closed link: {msg.param(0)}")
            return msg

    async def _send(self, line: str, *, sensitive: bool = False) -> None:
        if self._conn is None:
            raise ChatConnectionError("not connected")
        async with self._send_lock:
            try:
                await asyncio.wait_for(self._conn.write_line(line), self._config.write_timeout)
            except asyncio.TimeoutError:
                raise ChatConnectionError("write timed out") from None
            except OSError as exc:
                raise ChatConnectionError(f"write failed: {exc}") from exc
        if sensitive:
            log.debug("irc_send", command=line.split(" ", 1)[0])
        else:
            log.debug("irc_send", line=line)

    async def _disconnect(self) -> None:
        conn, self._conn = self._conn, None
        for channel in list(self._held):
            self._release_held(channel)
        self._pending_joins.clear()
        self._joined.clear()
        self._ready.clear()
        if self._state is not SessionState.STOPPED:
            self._set_state(SessionState.DISCONNECTED)
        if conn is not None:
            await conn.close()

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        log.debug("irc_state_changed", old=self._state.value, new=state.value)
        self._state = state
