"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import re
import sys
from typing import Iterable

import structlog

REDACTED = "***REDACTED***"

# "secret=abc", "password: abc" in free-form error strings
_ASSIGNMENT_RE = re.compile(r"(token|key|secret|password)([\"']?\s*[:=]\s*[\"']?)[\w\-\.]+", re.IGNORECASE)
# Credential-bearing IRC commands: "PASS hunter2", "IDENTIFY [account] hunter2"
_IRC_CREDENTIAL_RE = re.compile(r"\b(PASS|IDENTIFY)( +)\S+(?: +\S+)?")


class SecretRedactor:
    """structlog processor that masks credentials in string values.

    Besides the generic patterns, any exact value registered with
    ``register`` (webhook secret, server and NickServ passwords, channel
    keys) is masked wherever it appears.
    """

    def __init__(self) -> None:
        self._values: set[str] = set()

    def register(self, values: Iterable[str | None]) -> None:
        self._values.update(v for v in values if v)

    def redact(self, text: str) -> str:
        for value in self._values:
            if value in text:
                text = text.replace(value, REDACTED)
        text = _ASSIGNMENT_RE.sub(rf"\1\2{REDACTED}", text)
        return _IRC_CREDENTIAL_RE.sub(rf"\1\2{REDACTED}", text)

    def __call__(
        self,
        _logger: structlog.types.WrappedLogger,
        _method: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        for key, value in event_dict.items():
            if isinstance(value, str):
                event_dict[key] = self.redact(value)
        return event_dict


redactor = SecretRedactor()


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    secrets: Iterable[str | None] = (),
) -> None:
    """Route structlog through stdlib logging on stderr.

    ``secrets`` are masked in every log line from here on.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    redactor.register(secrets)

    if numeric_level <= logging.DEBUG:
        print(
            "WARNING: DEBUG logging is enabled. Raw IRC lines and webhook "
            "fields will be written to the log.",
            file=sys.stderr,
        )

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            redactor,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter_processors: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if json_output:
        formatter_processors.append(structlog.processors.format_exc_info)
    formatter_processors.append(renderer)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processors=formatter_processors))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # aiohttp's access log duplicates webhook_received
    for name in ("aiohttp.access", "aiohttp.server", "asyncio"):
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
