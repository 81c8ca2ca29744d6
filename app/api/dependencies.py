"""
Shared API dependencies.
Contains reusable dependency functions for FastAPI endpoints: database
session, facility clock, authenticated actor and idempotency handling.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlmodel import Session

from app.core.clock import FacilityClock, get_clock
from app.core.database import get_session
from app.core.idempotency import IdempotencyStore
from app.core.security import Actor, get_current_actor, require_parent, require_staff

# Database session dependency
# Use this type annotation in route handlers to get automatic session injection
SessionDep = Annotated[Session, Depends(get_session)]

ClockDep = Annotated[FacilityClock, Depends(get_clock)]

# Actor dependencies, resolved through the Actor Gateway
ActorDep = Annotated[Actor, Depends(get_current_actor)]
StaffDep = Annotated[Actor, Depends(require_staff)]
ParentDep = Annotated[Actor, Depends(require_parent)]

IdempotencyKey = Annotated[
    Optional[str], Header(alias="Idempotency-Key", max_length=128)
]


def get_idempotency_store(session: SessionDep, clock: ClockDep) -> IdempotencyStore:
    return IdempotencyStore(session, clock)


IdempotencyDep = Annotated[IdempotencyStore, Depends(get_idempotency_store)]


def replay(
    store: IdempotencyStore, key: Optional[str], scope: str, actor: Actor
) -> Optional[JSONResponse]:
    """Stored response for a retried request, or None for a first attempt."""
    if not key:
        return None
    record = store.lookup(key, scope, actor.reference)
    if record is None:
        return None
    return JSONResponse(content=record.response, status_code=record.status_code)


def remember(
    store: IdempotencyStore,
    key: Optional[str],
    scope: str,
    actor: Actor,
    response: BaseModel,
    status_code: int = 200,
) -> None:
    if key:
        store.save(
            key,
            scope,
            actor.reference,
            response.model_dump(mode="json", by_alias=True),
            status_code=status_code,
        )
