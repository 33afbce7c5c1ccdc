"""Demo protected resource endpoints."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from .protector import BearerTokenProtector
from ..oauth.models import IntrospectionResponse
from ...shared.logger import log_info

DEMO_USER = {
    "id": "123",
    "username": "demo_user",
    "email": "user@example.com",
    "name": "Demo User",
}

DEMO_DATA = [
    {"id": 1, "value": "Item 1"},
    {"id": 2, "value": "Item 2"},
    {"id": 3, "value": "Item 3"},
]


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_resource_router(protector: BearerTokenProtector) -> APIRouter:
    """Create the router for the bearer-protected demo API."""
    router = APIRouter(prefix="/api", tags=["resource"])

    @router.get("/protected")
    async def protected(token: IntrospectionResponse = Depends(protector.require())):
        return {
            "message": "This is a protected resource!",
            "client_id": token.client_id,
            "scope": token.scope,
            "timestamp": _timestamp(),
        }

    @router.get("/user/profile")
    async def user_profile(token: IntrospectionResponse = Depends(protector.require("read"))):
        return {
            "user": DEMO_USER,
            "client_id": token.client_id,
            "timestamp": _timestamp(),
        }

    @router.post("/user/update")
    async def user_update(
        update: UserUpdate,
        token: IntrospectionResponse = Depends(protector.require("write")),
    ):
        log_info("Demo user update", component="resource", client_id=token.client_id,
                 fields=sorted(update.model_dump(exclude_none=True)))
        return {
            "message": "User updated successfully",
            "updated": update.model_dump(),
            "timestamp": _timestamp(),
        }

    @router.get("/data")
    async def data(token: IntrospectionResponse = Depends(protector.require())):
        return {
            "data": DEMO_DATA,
            "client_id": token.client_id,
            "timestamp": _timestamp(),
        }

    return router
