# core/messaging.py
"""
Outbound messaging and telephony.

Delivery is out of process. The shipped provider records what would be sent
and accepts every addressed recipient.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Sequence

log = logging.getLogger(__name__)

CHANNELS = ("email", "whatsapp", "voice")


@dataclass(frozen=True)
class SendReceipt:
    accepted: int
    channel: str = ""


class MessagingProvider(ABC):
    """Fire-and-forget send. Implementations must not block on delivery."""

    @abstractmethod
    def send(self, channel: str, recipients: Sequence[str], payload: Dict[str, Any]) -> SendReceipt:
        ...


class LoggingMessagingProvider(MessagingProvider):
    def send(self, channel: str, recipients: Sequence[str], payload: Dict[str, Any]) -> SendReceipt:
        if channel not in CHANNELS:
            raise ValueError(f"Unsupported channel: {channel}")
        addressed = [r for r in recipients if r]
        log.info(
            "Dispatching %s to %d recipient(s): %s",
            channel, len(addressed), (payload.get("subject") or payload.get("message") or "")[:60],
        )
        return SendReceipt(accepted=len(addressed), channel=channel)


_default_provider: MessagingProvider = LoggingMessagingProvider()


def get_provider() -> MessagingProvider:
    return _default_provider
