"""Listing group-chat service."""

from .main import create_app
from .settings import GroupServiceSettings

__all__ = ["create_app", "GroupServiceSettings"]
