"""HTTP route modules."""

from .groups import CreateGroupBody, create_groups_router

__all__ = ["CreateGroupBody", "create_groups_router"]
