"""Webhook signature validation and event decoding."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

from pydantic import ValidationError

from raccoon.errors import AuthError, PayloadError, UnsupportedEventError
from raccoon.webhooks.models import HEADER_KINDS, EventKind, WebhookEvent, webhook_event_adapter

SIGNATURE_HEADER = "X-Gitlab-Signature"
TOKEN_HEADER = "X-Gitlab-Token"
EVENT_HEADER = "X-Gitlab-Event"

_SUPPORTED_KINDS = {kind.value for kind in EventKind}


# ---------------------------------------------------------------------------
# Signature validation
# ---------------------------------------------------------------------------

def compute_signature(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` signature GitLab-side senders attach."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def validate_signature(body: bytes, signature: str, secret: str) -> bool:
    """Validate an HMAC-SHA256 signature over the raw body.

    Returns False if no secret is configured (rejects unauthenticated requests).
    """
    if not secret:
        return False
    if not signature:
        return False
    # Header values may carry arbitrary non-ASCII text; compare as bytes
    expected = compute_signature(body, secret).encode()
    return hmac.compare_digest(expected, signature.encode(errors="replace"))


def validate_token(provided: str, secret: str) -> bool:
    """Validate GitLab's plain X-Gitlab-Token via constant-time comparison."""
    if not secret:
        return False
    if not provided:
        return False
    return hmac.compare_digest(provided.encode(errors="replace"), secret.encode())


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _event_kind(payload: dict[str, Any], event_header: str | None) -> str:
    kind = payload.get("object_kind")
    if isinstance(kind, str) and kind:
        return kind
    if event_header:
        mapped = HEADER_KINDS.get(event_header)
        return mapped.value if mapped else event_header
    raise PayloadError("Payload has no object_kind and no event header")


def decode_event(body: bytes, event_header: str | None = None) -> WebhookEvent:
    """Decode a raw webhook body into one of the supported event models."""
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise PayloadError(f"Invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise PayloadError("Payload must be a JSON object")

    kind = _event_kind(payload, event_header)
    if kind not in _SUPPORTED_KINDS:
        raise UnsupportedEventError(kind)

    try:
        return webhook_event_adapter.validate_python({**payload, "object_kind": kind})
    except ValidationError as exc:
        raise PayloadError(
            f"Invalid {kind} payload: {exc.error_count()} error(s), first at "
            f"{'.'.join(str(p) for p in exc.errors()[0]['loc'])}"
        ) from exc


def handle(
    body: bytes,
    signature: str | None,
    secret: str,
    *,
    event_header: str | None = None,
    scheme: str = "hmac",
) -> WebhookEvent:
    """Authenticate a request and decode its event.

    Raises AuthError on a missing or wrong signature, UnsupportedEventError
    for event kinds we don't format, and PayloadError for malformed bodies.
    """
    if scheme == "token":
        valid = validate_token(signature or "", secret)
    else:
        valid = validate_signature(body, signature or "", secret)
    if not valid:
        raise AuthError("Missing or invalid signature")

    return decode_event(body, event_header)
