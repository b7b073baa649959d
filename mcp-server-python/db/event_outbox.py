"""
SQLite outbox event sink.

Each published event becomes one ``lifecycle_events`` row carrying the raw
event payload and, when the event produces one, the rendered notification.
A separate delivery worker (out of scope here) drains the table.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from db.connection import connect, transaction
from models.events import LifecycleEvent
from utils.event_sink import EventSink, render_notification

logger = logging.getLogger(__name__)


class SqliteEventOutbox(EventSink):
    """
    Event sink that appends to the ``lifecycle_events`` outbox table.

    Usage:
        engine = LifecycleEngine(repo, event_sink=SqliteEventOutbox(db_path))
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path

    def publish(self, event: LifecycleEvent) -> None:
        notification = render_notification(event)
        with connect(self.db_path) as conn:
            with transaction(conn):
                conn.execute(
                    """
                    INSERT INTO lifecycle_events (
                        event_type, record_id, kind, recipient_ref, title,
                        message, priority, payload_json, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event.type.value,
                        event.record_id,
                        event.kind.value,
                        notification.recipient_ref if notification else None,
                        notification.title if notification else None,
                        notification.message if notification else None,
                        notification.priority if notification else None,
                        json.dumps(event.model_dump(mode="json"), sort_keys=True),
                        event.occurred_at,
                    ),
                )
        logger.debug(f"Queued {event.type.value} event for record {event.record_id}")

    def pending_events(self, record_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return outbox rows in insertion order, optionally for one record."""
        query = "SELECT * FROM lifecycle_events"
        params: tuple = ()
        if record_id is not None:
            query += " WHERE record_id = ?"
            params = (record_id,)
        query += " ORDER BY id ASC"
        with connect(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row) for row in rows]
