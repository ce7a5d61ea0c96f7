"""Profile store error hierarchy.

Kept free of httpx types so enricher callers never see transport objects or
credentials.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SupabaseError(Exception):
    """PostgREST request failed."""

    status_code: int
    message: str
    code: str | None = None
    details: str | None = None

    def __str__(self) -> str:
        text = f"profile store returned {self.status_code}: {self.message}"
        extras = [f"{k}={v}" for k, v in (("code", self.code), ("details", self.details)) if v]
        return f"{text} ({', '.join(extras)})" if extras else text


class SupabaseAuthError(SupabaseError):
    """401/403: bad service-role key or RLS denial."""


class SupabaseNotFoundError(SupabaseError):
    """404: missing table or view."""
