"""
Actor model and authentication dependencies.

Identity is owned by the external Actor Gateway. Portal and admin requests
carry a bearer token that the gateway resolves to an ``Actor``; kiosk requests
carry a PIN that is matched against the opaque PIN hashes in the shared store.
"""

import hashlib
import hmac
from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from app.api.clients.actor_gateway import actor_gateway
from app.core.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.logging import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class ActorType(str, Enum):
    PARENT = "parent"
    EMPLOYEE = "employee"
    STAFF = "staff"


class Actor(BaseModel):
    """A verified caller handed to the engines."""

    actor_type: ActorType
    actor_id: int
    name: str = ""
    child_ids: list[int] = []

    @property
    def is_staff(self) -> bool:
        return self.actor_type == ActorType.STAFF

    @property
    def reference(self) -> str:
        return f"{self.actor_type.value}:{self.actor_id}"


def hash_pin(pin: str) -> str:
    """
    Opaque, deterministic digest of a kiosk PIN.

    Keyed with PIN_HASH_SECRET so stored values are useless without the
    secret, while still allowing lookup by digest.
    """
    return hmac.new(
        settings.PIN_HASH_SECRET.encode("utf-8"),
        pin.strip().encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_pin(pin: str, pin_hash: Optional[str]) -> bool:
    if not pin_hash:
        return False
    return hmac.compare_digest(hash_pin(pin), pin_hash)


async def get_current_actor(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
) -> Actor:
    """Resolve the bearer token through the Actor Gateway."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")

    payload = await actor_gateway.resolve_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Session could not be resolved")

    try:
        return Actor(
            actor_type=ActorType(payload["type"]),
            actor_id=int(payload["id"]),
            name=payload.get("name", ""),
            child_ids=[int(c) for c in payload.get("childIds", [])],
        )
    except (KeyError, ValueError) as e:
        logger.error(f"Malformed actor payload from gateway: {e}")
        raise AuthenticationError("Session could not be resolved") from e


async def require_staff(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Only staff/admin actors may pass."""
    if not actor.is_staff:
        logger.warning(f"{actor.reference} attempted a staff-only operation")
        raise AuthorizationError("Staff access required")
    return actor


async def require_parent(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Parents (and staff acting on their behalf) may pass."""
    if actor.actor_type == ActorType.EMPLOYEE:
        raise AuthorizationError("Parent access required")
    return actor
