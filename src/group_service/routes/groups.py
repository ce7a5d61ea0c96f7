"""Group creation API.

  POST /create-group → provision a listing chat for owner, renter and manager

Response contract (consumed by the mini-app backend):
  200 ``{success, chat_id, chat_title, invite_link?}``
  400 ``{error, message}`` when a required id is missing
  503 ``{error, message}`` when the facilitator session is unavailable
  500 ``{error, message}`` when resolution, creation or anything unexpected fails
"""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from ..observability.logging import get_logger
from ..provisioning import (
    GroupCreationError,
    GroupProvisioningService,
    PeerResolutionError,
    ProvisioningRequest,
    ValidationError,
)
from ..telegram.session import SessionUnavailableError

logger = get_logger(__name__)

IdValue = Union[str, int, None]

REQUIRED_FIELDS_ERROR = (
    "Missing required parameters: "
    "listing_id, owner_telegram_id, renter_telegram_id, manager_telegram_id"
)

_WIRE_NAMES = {
    "listing_id": "listing_id",
    "owner_id": "owner_telegram_id",
    "renter_id": "renter_telegram_id",
    "facilitator_id": "manager_telegram_id",
}


class CreateGroupBody(BaseModel):
    """Inbound payload; ids arrive as strings or JSON numbers."""

    listing_id: IdValue = None
    owner_telegram_id: IdValue = None
    renter_telegram_id: IdValue = None
    manager_telegram_id: IdValue = None
    listing_title: str | None = None
    owner_username: str | None = None
    renter_username: str | None = None
    owner_profile_id: IdValue = None
    renter_profile_id: IdValue = None

    @field_validator(
        "listing_id",
        "owner_telegram_id",
        "renter_telegram_id",
        "manager_telegram_id",
        "owner_profile_id",
        "renter_profile_id",
        mode="after",
    )
    @classmethod
    def _stringify(cls, value: IdValue) -> str | None:
        if value is None:
            return None
        return str(value).strip()

    def to_request(self) -> ProvisioningRequest:
        return ProvisioningRequest(
            listing_id=self.listing_id or "",
            owner_id=self.owner_telegram_id or "",
            renter_id=self.renter_telegram_id or "",
            facilitator_id=self.manager_telegram_id or "",
            listing_title=self.listing_title,
            owner_handle=self.owner_username,
            renter_handle=self.renter_username,
            owner_profile_id=self.owner_profile_id or None,
            renter_profile_id=self.renter_profile_id or None,
        )


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def create_groups_router() -> APIRouter:
    router = APIRouter(tags=["groups"])

    @router.post("/create-group")
    async def create_group(body: CreateGroupBody, request: Request):
        deps = request.app.state.deps
        service: GroupProvisioningService = deps.service
        provisioning_request = body.to_request()

        try:
            provisioning_request.validate()
        except ValidationError as exc:
            missing = [_WIRE_NAMES.get(name, name) for name in exc.missing]
            logger.warning("create_group_invalid_request", missing=missing)
            return _error(400, REQUIRED_FIELDS_ERROR, "Missing: " + ", ".join(missing))

        if deps.session is not None:
            try:
                await deps.session.ensure_ready()
            except SessionUnavailableError as exc:
                return _error(503, "Telegram session unavailable", str(exc))

        try:
            result = await service.provision(provisioning_request)
        except (PeerResolutionError, GroupCreationError) as exc:
            logger.error(
                "create_group_failed",
                listing_id=provisioning_request.listing_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return _error(500, "Failed to create group", str(exc))
        except Exception as exc:
            logger.exception(
                "create_group_unexpected_error",
                listing_id=provisioning_request.listing_id,
                error_type=type(exc).__name__,
            )
            return _error(500, "Failed to create group", str(exc))

        payload = {
            "success": True,
            "chat_id": result.group.group_id,
            "chat_title": result.group.title,
        }
        if result.invite_link:
            payload["invite_link"] = result.invite_link
        return payload

    return router
