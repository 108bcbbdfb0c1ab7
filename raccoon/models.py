"""Typed message models passed from the webhook side to the IRC side."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OutboundMessage:
    channel: str
    text: str
