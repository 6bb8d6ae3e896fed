"""
HTTP client for the Audit Event Service.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union
from uuid import UUID

import httpx


class AuditEventClient:
    """
    Client for recording and querying audit events.

    Error responses raise :class:`httpx.HTTPStatusError`; the service's
    ``{"message": ...}`` body is available on ``exc.response``.
    """

    def __init__(
        self,
        api_url: str = "http://localhost:8080",
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0
    ):
        """
        Initialize the client.

        Args:
            api_url: Base URL of the audit event API
            client: Pre-configured HTTP client (its base URL is used as-is)
            timeout: Request timeout for the client created here
        """
        self.api_url = api_url.rstrip('/')
        self._owns_client = client is None
        self.client = client or httpx.Client(base_url=self.api_url, timeout=timeout)

    def create_event(
        self,
        entity: str,
        action: str,
        event: str,
        author: str,
        time: Optional[datetime] = None
    ) -> dict:
        """Record a new event and return it with its assigned id."""
        payload = {
            "entity": entity,
            "action": action,
            "event": event,
            "author": author,
        }
        if time is not None:
            payload["time"] = time.isoformat()

        response = self.client.post("/event", json=payload)
        response.raise_for_status()
        return response.json()

    def list_events(self, **filters: Union[str, Sequence[str]]) -> List[dict]:
        """
        List events, newest first.

        Each keyword filters on the event field of that name; a list of
        values matches any of them, e.g. ``list_events(action=["CREATE", "UPDATE"])``.
        """
        params = []
        for field, value in filters.items():
            if isinstance(value, str):
                params.append((field, value))
            else:
                params.extend((field, v) for v in value)

        response = self.client.get("/event", params=params)
        response.raise_for_status()
        return response.json()

    def get_event(self, event_id: Union[str, UUID]) -> dict:
        response = self.client.get(f"/event/{event_id}")
        response.raise_for_status()
        return response.json()

    def update_event(self, event_id: Union[str, UUID], event: Dict[str, Any]) -> None:
        """Replace an event. Fields missing from ``event`` are reset to defaults."""
        payload = {k: v for k, v in event.items() if k != "id"}
        if isinstance(payload.get("time"), datetime):
            payload["time"] = payload["time"].isoformat()

        response = self.client.put(f"/event/{event_id}", json=payload)
        response.raise_for_status()

    def delete_event(self, event_id: Union[str, UUID]) -> None:
        response = self.client.delete(f"/event/{event_id}")
        response.raise_for_status()

    def close(self):
        """Close the HTTP client if it was created here."""
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
