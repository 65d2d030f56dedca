"""
Event Log Repository - audit trail and idempotency record for atomic operations
"""
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session

from fintrack.infrastructure.db.models import EventLog


class EventLogRepository:
    """
    Repository for the event log
    """

    def __init__(self, db: Session):
        self.db = db

    def append_event(
        self,
        user_id: int,
        event_type: str,
        payload: Dict[str, Any],
        occurred_at: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
    ) -> int:
        """
        Append an event (does not commit)

        Args:
            user_id: Owner of the event
            event_type: Event type, e.g. "transfer_created"
            payload: Event data (stored as JSONB)
            occurred_at: When it happened (default: now, UTC)
            idempotency_key: Client-supplied key, unique per user and event type

        Returns:
            event_id: ID of the new event

        Raises:
            IntegrityError: if the user already recorded this event type under the key
        """
        if occurred_at is None:
            occurred_at = datetime.now(timezone.utc)

        event = EventLog(
            user_id=user_id,
            event_type=event_type,
            payload_json=payload,
            occurred_at=occurred_at,
            idempotency_key=idempotency_key,
        )

        self.db.add(event)
        self.db.flush()  # get the ID without committing

        return event.id

    def get_by_idempotency_key(
        self,
        user_id: int,
        event_type: str,
        idempotency_key: str,
    ) -> Optional[EventLog]:
        """
        Find an earlier event recorded under the same idempotency key

        Returns:
            EventLog or None
        """
        return self.db.query(EventLog).filter(
            EventLog.user_id == user_id,
            EventLog.event_type == event_type,
            EventLog.idempotency_key == idempotency_key,
        ).first()
