"""
Parent portal endpoints for reporting, editing and cancelling absences.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query

from app.api.dependencies import ClockDep, ParentDep, SessionDep
from app.api.publishers import publish_absence
from app.core.events import EventType
from app.core.logging import get_logger
from app.models.absence import (
    AbsenceCreate,
    AbsenceListResponse,
    AbsencePublic,
    AbsenceReasonPublic,
    AbsenceUpdate,
    AbsenceView,
)
from app.services.absence_service import AbsenceService

logger = get_logger(__name__)

router = APIRouter(
    prefix="/portal",
    tags=["portal"],
    responses={404: {"description": "Absence not found"}},
)


@router.get("/absence-reasons", response_model=list[AbsenceReasonPublic])
async def absence_reasons(
    session: SessionDep, clock: ClockDep, actor: ParentDep
) -> list[AbsenceReasonPublic]:
    """Active absence reasons in display order."""
    return [
        AbsenceReasonPublic(
            id=r.id, name=r.name, category=r.category, requires_notes=r.requires_notes
        )
        for r in AbsenceService(session, clock).reasons()
    ]


@router.get("/absences", response_model=AbsenceListResponse)
async def my_absences(
    session: SessionDep,
    clock: ClockDep,
    actor: ParentDep,
    child_id: Annotated[Optional[int], Query(alias="childId", gt=0)] = None,
    view: AbsenceView = AbsenceView.UPCOMING,
) -> AbsenceListResponse:
    """
    Absences for the caller's children.

    ``upcoming`` lists absences whose last day is today or later, ``past``
    those that already ended. Cancelled reports are never listed.
    """
    service = AbsenceService(session, clock)
    if view == AbsenceView.UPCOMING:
        absences = service.upcoming_for(child_id, actor)
    else:
        absences = service.past_for(child_id, actor)
    return AbsenceListResponse(total=len(absences), absences=service.to_public(absences))


@router.post("/absences", response_model=AbsencePublic, status_code=201)
async def report_absence(
    request: AbsenceCreate, session: SessionDep, clock: ClockDep, actor: ParentDep
) -> AbsencePublic:
    """
    Report an absence for one of the caller's children.

    Raises:
        ValidationError (400): invalid date range, unknown reason or missing notes
        AuthorizationError (403): child is not linked to the caller
    """
    service = AbsenceService(session, clock)
    absence = service.report(
        request.child_id,
        request.start_date,
        request.reason_id,
        actor,
        end_date=request.end_date,
        notes=request.notes,
        expected_return_date=request.expected_return_date,
    )

    await publish_absence(EventType.ABSENCE_REPORTED, absence, actor)
    return service.to_public([absence])[0]


@router.put("/absences/{absence_id}", response_model=AbsencePublic)
async def update_absence(
    request: AbsenceUpdate,
    session: SessionDep,
    clock: ClockDep,
    actor: ParentDep,
    absence_id: Annotated[int, Path(gt=0)],
) -> AbsencePublic:
    """Edit a pending absence that has not started yet."""
    service = AbsenceService(session, clock)
    absence = service.update(absence_id, request, actor)

    await publish_absence(EventType.ABSENCE_UPDATED, absence, actor)
    return service.to_public([absence])[0]


@router.delete("/absences/{absence_id}", response_model=AbsencePublic)
async def cancel_absence(
    session: SessionDep,
    clock: ClockDep,
    actor: ParentDep,
    absence_id: Annotated[int, Path(gt=0)],
) -> AbsencePublic:
    """
    Cancel a pending absence that is today or in the future.

    The report is kept with status ``cancelled``.
    """
    service = AbsenceService(session, clock)
    absence = service.cancel(absence_id, actor)

    await publish_absence(EventType.ABSENCE_CANCELLED, absence, actor)
    return service.to_public([absence])[0]
