"""
Event collection endpoints - /event
"""

import logging
from typing import AsyncGenerator, List
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from prometheus_client import Counter

from audit_api.config import Settings, get_app_settings
from audit_api.database import Database, get_db
from audit_api.errors import AuditServiceError, BadRequest, StoreError
from audit_api.models import ErrorMessage, Event, EventBody
from audit_api.services.event_store import EventCollection
from audit_api.services.query_filter import filter_from_query

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/event",
    tags=["events"],
    responses={
        400: {"model": ErrorMessage},
        500: {"model": ErrorMessage, "description": "Oops ... something went wrong"},
    },
)

# Prometheus metrics
events_written = Counter(
    'audit_events_written_total',
    'Event writes by operation',
    ['operation']
)
event_failures = Counter(
    'audit_event_failures_total',
    'Failed event operations',
    ['operation', 'status']
)


def _count_failure(operation: str, exc: AuditServiceError) -> None:
    event_failures.labels(operation=operation, status=str(exc.status_code)).inc()


async def get_events(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
) -> AsyncGenerator[EventCollection, None]:
    """
    Dependency injection for the event collection bound to this request.

    One pooled connection is held for the request and released when it ends.
    """
    try:
        conn = await db.checkout()
    except StoreError as e:
        _count_failure("checkout", e)
        raise

    try:
        yield EventCollection(conn, table=settings.events_table, limit=settings.list_limit)
    finally:
        await db.release(conn)


def parse_event_id(raw: str) -> UUID:
    """Decode an identifier taken from the URL path."""
    try:
        return UUID(raw)
    except ValueError:
        raise BadRequest(f"Invalid event id: {raw}")


@router.get("", response_model=List[Event])
async def list_events(
    request: Request,
    events: EventCollection = Depends(get_events)
):
    """
    Return the events in the audit log matching the specified criteria.

    Every query parameter filters on the event field of the same name:

    - `?entity=User` returns events whose entity is exactly `User`
    - `?action=CREATE&action=UPDATE` returns events whose action is either value

    Parameters are combined with AND. At most 100 events are returned,
    newest first.
    """
    expression = filter_from_query(request.query_params)
    logger.debug(f"List filter: {expression}")

    try:
        return await events.list(expression)
    except AuditServiceError as e:
        _count_failure("list", e)
        raise


@router.post(
    "",
    response_model=Event,
    status_code=status.HTTP_201_CREATED,
    summary="Add a new event to the audit log"
)
async def add_event(
    body: EventBody,
    response: Response,
    events: EventCollection = Depends(get_events)
):
    """
    Add an event to the audit log.

    The identifier is assigned by the store; the response carries the stored
    event and a `Location` header pointing at it.
    """
    try:
        event = await events.insert(body)
    except AuditServiceError as e:
        _count_failure("insert", e)
        raise

    events_written.labels(operation="insert").inc()
    response.headers["Location"] = f"{router.prefix}/{event.id}"
    return event


@router.get("/{event_id}", response_model=Event, responses={404: {"model": ErrorMessage}})
async def get_event(
    event_id: str,
    events: EventCollection = Depends(get_events)
):
    """Retrieve a single event by identifier."""
    try:
        return await events.get_by_id(parse_event_id(event_id))
    except AuditServiceError as e:
        _count_failure("get", e)
        raise


@router.put(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorMessage}}
)
async def update_event(
    event_id: str,
    body: EventBody,
    events: EventCollection = Depends(get_events)
):
    """Replace an existing event with the submitted document."""
    try:
        await events.update_by_id(parse_event_id(event_id), body)
    except AuditServiceError as e:
        _count_failure("update", e)
        raise

    events_written.labels(operation="update").inc()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorMessage}}
)
async def delete_event(
    event_id: str,
    events: EventCollection = Depends(get_events)
):
    """Remove an event from the audit log."""
    try:
        await events.delete_by_id(parse_event_id(event_id))
    except AuditServiceError as e:
        _count_failure("delete", e)
        raise

    events_written.labels(operation="delete").inc()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
