"""Canonical identifier handling.

Telegram ids reach us as Python ints (Telethon), numeric strings (HTTP
payloads), occasionally floats (JSON numbers from loose clients), and as
"self" markers when the facilitator's own session refers to itself. Inside
the orchestrator every id is a canonical decimal string.
"""

from __future__ import annotations

from typing import Any

SELF_MARKERS = frozenset({"self", "me"})


def canonical_id(value: Any, *, self_id: str | None = None) -> str | None:
    """Return the canonical string form of ``value`` or None if it has none.

    ``self_id`` is substituted for self markers (the strings ``"self"`` /
    ``"me"`` and ``InputPeerSelf``-like objects).
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else None

    if isinstance(value, str):
        text = value.strip()
        if text.lower() in SELF_MARKERS:
            return self_id
        if text.startswith("-"):
            return str(int(text)) if text[1:].isdigit() else None
        return str(int(text)) if text.isdigit() else None

    if type(value).__name__ in ("InputPeerSelf", "InputUserSelf", "PeerSelf"):
        return self_id

    user_id = getattr(value, "user_id", None)
    if user_id is not None:
        return canonical_id(user_id, self_id=self_id)

    return None


def normalize_handle(handle: str | None) -> str | None:
    """Strip whitespace and a leading ``@``; empty handles become None."""
    if not handle:
        return None
    text = handle.strip().lstrip("@").strip()
    return text or None
