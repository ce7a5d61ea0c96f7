"""Optional participant profile store."""

from .enricher import ProfileEnricher, format_profile
from .errors import SupabaseAuthError, SupabaseError, SupabaseNotFoundError
from .supabase_client import SupabaseClient

__all__ = [
    "ProfileEnricher",
    "SupabaseAuthError",
    "SupabaseClient",
    "SupabaseError",
    "SupabaseNotFoundError",
    "format_profile",
]
