"""Telethon-backed facilitator session and platform adapter."""

from .platform import TelegramPlatform
from .session import FacilitatorSession, SessionUnavailableError

__all__ = [
    "FacilitatorSession",
    "SessionUnavailableError",
    "TelegramPlatform",
]
