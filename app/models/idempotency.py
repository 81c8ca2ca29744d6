"""
Idempotency key storage.

A kiosk that times out and retries sends the same ``Idempotency-Key``; the
first successful response is stored here and replayed instead of performing
the mutation twice.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class IdempotencyRecord(SQLModel, table=True):
    __tablename__ = "idempotency_keys"

    key: str = Field(primary_key=True, max_length=128)
    scope: str = Field(primary_key=True, max_length=64)
    actor: str = Field(max_length=64)
    status_code: int = Field(default=200)
    response: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    expires_at: Optional[datetime] = Field(default=None)
