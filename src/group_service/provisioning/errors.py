"""Provisioning error hierarchy.

Only the irrecoverable classes (validation, resolution, creation) ever reach
the HTTP caller. Everything downstream of a created group is recovered
locally by the orchestrator.
"""

from __future__ import annotations

from typing import Sequence


class ProvisioningError(Exception):
    """Base class for group provisioning failures."""


class ValidationError(ProvisioningError):
    """Required request fields are missing."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            "Missing required parameters: " + ", ".join(self.missing)
        )


class PeerResolutionError(ProvisioningError):
    """Every resolution strategy failed for a participant."""

    def __init__(self, identifier: object, role: str, reason: str = "") -> None:
        self.identifier = identifier
        self.role = role
        message = f"could not resolve {role} peer {identifier!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class GroupCreationError(ProvisioningError):
    """The create-chat call failed or returned an unrecognised shape."""

    def __init__(self, message: str, *, raw_response: str | None = None) -> None:
        self.raw_response = raw_response
        if raw_response:
            message = f"{message}. Response: {raw_response}"
        super().__init__(message)


class MembershipQueryFailure(ProvisioningError):
    """The live member list could not be fetched or parsed."""
