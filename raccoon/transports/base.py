"""Line-oriented connection abstraction and its TLS stream implementation."""

from __future__ import annotations

import asyncio
import ssl
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from raccoon.errors import ChatConnectionError

# RFC 1459 caps lines at 512 bytes; IRCv3 message tags may add more
MAX_READ_BYTES = 8192


class LineConnection(ABC):
    @abstractmethod
    async def read_line(self) -> str:
        """Return the next line without its terminator. Raises ChatConnectionError on EOF."""

    @abstractmethod
    async def write_line(self, line: str) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...


Connector = Callable[[str, int], Awaitable[LineConnection]]


class StreamConnection(LineConnection):
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer

    async def read_line(self) -> str:
        try:
            raw = await self._reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as exc:
            raise ChatConnectionError("connection closed by server") from exc
        except asyncio.LimitOverrunError as exc:
            raise ChatConnectionError("line too long") from exc
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    async def write_line(self, line: str) -> None:
        self._writer.write(line.encode() + b"\r\n")
        await self._writer.drain()

    async def close(self) -> None:
        if self._writer.is_closing():
            return
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (OSError, ssl.SSLError):
            pass


async def open_tls_connection(host: str, port: int) -> StreamConnection:
    """Open a certificate-verified TLS connection."""
    context = ssl.create_default_context()
    reader, writer = await asyncio.open_connection(
        host, port, ssl=context, limit=MAX_READ_BYTES
    )
    return StreamConnection(reader, writer)
