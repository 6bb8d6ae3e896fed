"""
Event collection accessor.

Events are kept as JSONB documents in a single PostgreSQL table. Filter
expressions produced by :mod:`audit_api.services.query_filter` are compiled
into parameterised predicates over the document column.
"""

import json
import logging
from typing import Any, Dict, List, Tuple
from uuid import UUID

import asyncpg
from asyncpg import Connection

from audit_api.database import STORE_ERRORS
from audit_api.errors import DuplicateKey, NotFound, StoreError
from audit_api.models import Event, EventBody
from audit_api.services.query_filter import IN

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


def compile_filter(expression: Dict[str, Any]) -> Tuple[str, List[Any]]:
    """
    Compile a filter expression into a SQL predicate over ``doc``.

    Field names are bound as parameters, so arbitrary query parameter
    names cannot alter the statement.

    Returns:
        Tuple of (where clause, positional parameters)
    """
    conditions = []
    params: List[Any] = []

    for field, value in expression.items():
        params.append(field)
        field_ref = f"doc ->> ${len(params)}::text"

        if isinstance(value, dict) and IN in value:
            params.append([str(v) for v in value[IN]])
            conditions.append(f"{field_ref} = ANY(${len(params)}::text[])")
        else:
            params.append(str(value))
            conditions.append(f"{field_ref} = ${len(params)}::text")

    where_clause = " AND ".join(conditions) if conditions else "1=1"
    return where_clause, params


def _row_to_event(row) -> Event:
    document = row['doc']
    if isinstance(document, str):
        document = json.loads(document)
    return Event.from_document(row['id'], document)


class EventCollection:
    """Operations on the event collection through one connection."""

    def __init__(self, conn: Connection, table: str = "events", limit: int = DEFAULT_LIMIT):
        self.conn = conn
        self.table = table
        self.limit = limit

    async def ensure_schema(self) -> None:
        """Create the events table and its indexes if they are missing."""
        try:
            await self.conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                    time TIMESTAMPTZ NOT NULL,
                    doc JSONB NOT NULL
                );
                CREATE INDEX IF NOT EXISTS {self.table}_time_idx
                    ON {self.table} (time DESC);
                CREATE INDEX IF NOT EXISTS {self.table}_doc_idx
                    ON {self.table} USING GIN (doc);
                """
            )
        except STORE_ERRORS as e:
            raise StoreError() from e

        logger.info(f"Schema ready for table {self.table}")

    async def list(self, expression: Dict[str, Any]) -> List[Event]:
        """
        Return events matching a filter expression.

        At most ``limit`` events are returned, newest first.
        """
        where_clause, params = compile_filter(expression)
        params.append(self.limit)

        query = f"""
            SELECT id, doc
            FROM {self.table}
            WHERE {where_clause}
            ORDER BY time DESC
            LIMIT ${len(params)}
        """

        try:
            rows = await self.conn.fetch(query, *params)
        except STORE_ERRORS as e:
            logger.error(f"Failed to list events: {e}")
            raise StoreError() from e

        return [_row_to_event(row) for row in rows]

    async def insert(self, body: EventBody) -> Event:
        """Store a new event; the store assigns its identifier."""
        document = body.to_document()

        try:
            event_id = await self.conn.fetchval(
                f"""
                INSERT INTO {self.table} (time, doc)
                VALUES ($1, $2::jsonb)
                RETURNING id
                """,
                body.time,
                json.dumps(document)
            )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateKey() from e
        except STORE_ERRORS as e:
            logger.error(f"Failed to insert event: {e}")
            raise StoreError() from e

        logger.info(f"Event stored: id={event_id}, entity={body.entity}, action={body.action}")

        return Event.from_document(event_id, document)

    async def get_by_id(self, event_id: UUID) -> Event:
        try:
            row = await self.conn.fetchrow(
                f"SELECT id, doc FROM {self.table} WHERE id = $1",
                event_id
            )
        except STORE_ERRORS as e:
            logger.error(f"Failed to find event {event_id}: {e}")
            raise StoreError() from e

        if not row:
            raise NotFound()

        return _row_to_event(row)

    async def update_by_id(self, event_id: UUID, body: EventBody) -> Event:
        """Replace the whole document of an existing event."""
        document = body.to_document()

        try:
            updated_id = await self.conn.fetchval(
                f"""
                UPDATE {self.table}
                SET time = $2, doc = $3::jsonb
                WHERE id = $1
                RETURNING id
                """,
                event_id,
                body.time,
                json.dumps(document)
            )
        except STORE_ERRORS as e:
            logger.error(f"Failed to update event {event_id}: {e}")
            raise StoreError() from e

        if updated_id is None:
            raise NotFound()

        logger.info(f"Event replaced: id={event_id}")

        return Event.from_document(updated_id, document)

    async def delete_by_id(self, event_id: UUID) -> None:
        try:
            deleted_id = await self.conn.fetchval(
                f"DELETE FROM {self.table} WHERE id = $1 RETURNING id",
                event_id
            )
        except STORE_ERRORS as e:
            logger.error(f"Failed to delete event {event_id}: {e}")
            raise StoreError() from e

        if deleted_id is None:
            raise NotFound()

        logger.info(f"Event deleted: id={event_id}")
