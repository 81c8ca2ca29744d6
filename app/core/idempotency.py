"""
Idempotency key handling for retried kiosk and punch-create calls.
"""

from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.clock import FacilityClock
from app.core.config import settings
from app.core.exceptions import ConflictError
from app.core.logging import get_logger
from app.models.idempotency import IdempotencyRecord

logger = get_logger(__name__)


class IdempotencyStore:
    """Stores the first successful response per (key, scope)."""

    def __init__(self, session: Session, clock: FacilityClock):
        self.session = session
        self.clock = clock

    def lookup(self, key: str, scope: str, actor: str) -> Optional[IdempotencyRecord]:
        """Return the stored record for a retried call, or None."""
        record = self.session.get(IdempotencyRecord, (key, scope))
        if record is None:
            return None

        if record.expires_at is not None and record.expires_at <= self.clock.now():
            logger.info(f"Idempotency key {key} ({scope}) expired, discarding")
            self.session.delete(record)
            self.session.commit()
            return None

        if record.actor != actor:
            raise ConflictError(
                "Idempotency key was already used by another caller",
                field="Idempotency-Key",
            )

        logger.info(f"Replaying stored response for idempotency key {key} ({scope})")
        return record

    def save(
        self,
        key: str,
        scope: str,
        actor: str,
        response: dict[str, Any],
        status_code: int = 200,
    ) -> None:
        now = self.clock.now()
        record = IdempotencyRecord(
            key=key,
            scope=scope,
            actor=actor,
            status_code=status_code,
            response=response,
            created_at=now,
            expires_at=now + timedelta(hours=settings.IDEMPOTENCY_TTL_HOURS),
        )
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent retry stored its response first; that one wins
            self.session.rollback()
            logger.info(f"Idempotency key {key} ({scope}) already recorded")
