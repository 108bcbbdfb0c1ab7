"""Error taxonomy for the webhook side and the IRC side of the bridge."""

from __future__ import annotations

from enum import Enum


class RejectReason(str, Enum):
    UNAUTHORIZED = "unauthorized"
    UNSUPPORTED = "unsupported"
    BAD_PAYLOAD = "bad_payload"


class RaccoonError(Exception):
    """Base exception for raccoon."""


class ConfigError(RaccoonError):
    """Configuration is missing or invalid. Fatal at startup."""


class WebhookRejected(RaccoonError):
    """A webhook request was not turned into an event."""

    reason: RejectReason = RejectReason.BAD_PAYLOAD


class AuthError(WebhookRejected):
    reason = RejectReason.UNAUTHORIZED


class DecodeError(WebhookRejected):
    reason = RejectReason.BAD_PAYLOAD


class PayloadError(DecodeError):
    """Body is not JSON, not an object, or lacks required fields."""


class UnsupportedEventError(DecodeError):
    reason = RejectReason.UNSUPPORTED

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unsupported event kind: {kind}")
        self.kind = kind


class ChatConnectionError(RaccoonError):
    """Transient IRC failure: the session reconnects with backoff."""


class ChatProtocolError(RaccoonError):
    """The IRC server refused us in a way retrying the same step won't fix."""
