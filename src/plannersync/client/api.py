"""HTTP client for the plann.er REST API.

This module provides:
- PlannerClient: HTTP client for the trip, task, checklist and guest routes
- APIError hierarchy mapping HTTP failures to exceptions
- NetworkError for requests that never produced an HTTP response
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from plannersync.core.config import ServerConfig

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed or token expired."""


class NotFoundError(APIError):
    """Resource not found."""


class ConflictError(APIError):
    """Concurrent modification rejected by the server."""


class RateLimitError(APIError):
    """Too many requests."""


class NetworkError(APIError):
    """No HTTP response was received (connection refused, DNS, timeout...)."""


def _error_detail(response: httpx.Response, default: str) -> str:
    """Extract the error message from a plann.er error body."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or default
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or default)
    return default


class PlannerClient:
    """HTTP client for the plann.er API."""

    def __init__(
        self,
        config: ServerConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Server configuration with URL, token, and settings.
            transport: Optional httpx transport (used by tests).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.token}"},
            transport=transport,
        )

    @property
    def config(self) -> ServerConfig:
        """Get the server configuration."""
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> PlannerClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, mapping transport failures to NetworkError."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.debug("%s %s failed without response: %s", method, url, e)
            raise NetworkError(f"{method} {url}: {e}") from e
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        status = response.status_code
        if status < 400:
            return response
        if status == 401:
            raise AuthenticationError(
                _error_detail(response, "Invalid or expired token"), 401
            )
        if status == 404:
            raise NotFoundError(_error_detail(response, "Resource not found"), 404)
        if status == 409:
            raise ConflictError(_error_detail(response, "Conflict"), 409)
        if status == 429:
            raise RateLimitError(_error_detail(response, "Too many requests"), 429)
        raise APIError(_error_detail(response, "Unknown error"), status)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        """Decode a JSON body, returning None for empty responses."""
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is reachable and healthy.

        Returns:
            True if the server answered 200 on /health.
        """
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Trip ===

    def update_trip(
        self,
        trip_id: str,
        destination: str,
        date: str,
        is_draft: bool | None = None,
    ) -> dict[str, Any] | None:
        """Upsert the trip destination, date and draft flag.

        Args:
            trip_id: Trip identifier.
            destination: Destination label.
            date: Date range as entered by the user.
            is_draft: Draft flag, omitted when None.

        Returns:
            Updated trip document.
        """
        body: dict[str, Any] = {"destination": destination, "date": date}
        if is_draft is not None:
            body["isDraft"] = is_draft
        return self._json(self._request("PATCH", f"/trips/{trip_id}", json=body))

    # === Tasks ===

    def create_task(self, trip_id: str, description: str) -> dict[str, Any] | None:
        """Create a task under a trip."""
        response = self._request(
            "POST", f"/trips/{trip_id}/tasks", json={"description": description}
        )
        return self._json(response)

    def update_task(self, trip_id: str, task_id: str, completed: bool) -> None:
        """Set the completion flag of a task."""
        self._request(
            "PUT", f"/trips/{trip_id}/tasks/{task_id}", json={"completed": completed}
        )

    def delete_task(self, trip_id: str, task_id: str) -> None:
        """Remove a task."""
        self._request("DELETE", f"/trips/{trip_id}/tasks/{task_id}")

    # === Checklist ===

    def create_checklist_item(self, trip_id: str, text: str) -> dict[str, Any] | None:
        """Create a checklist item.

        Returns:
            The created item (``_id``, ``text``, ``checked``).
        """
        response = self._request(
            "POST", f"/trips/{trip_id}/checklist", json={"text": text}
        )
        return self._json(response)

    def update_checklist_item(
        self, trip_id: str, item_id: str, checked: bool
    ) -> dict[str, Any] | None:
        """Set the checked flag of a checklist item.

        Returns:
            The updated item.
        """
        response = self._request(
            "PATCH",
            f"/trips/{trip_id}/checklist/{item_id}",
            json={"checked": checked},
        )
        return self._json(response)

    def delete_checklist_item(self, trip_id: str, item_id: str) -> None:
        """Remove a checklist item."""
        self._request("DELETE", f"/trips/{trip_id}/checklist/{item_id}")

    # === Guests ===

    def create_guest(self, trip_id: str, name: str) -> dict[str, Any] | None:
        """Add a guest to a trip.

        Returns:
            The created guest, including its share link.
        """
        response = self._request(
            "POST", f"/trips/{trip_id}/guests", json={"name": name}
        )
        return self._json(response)

    def update_guest(
        self, trip_id: str, guest_id: str, name: str
    ) -> dict[str, Any] | None:
        """Rename a guest.

        Returns:
            The updated guest.
        """
        response = self._request(
            "PUT", f"/trips/{trip_id}/guests/{guest_id}", json={"name": name}
        )
        return self._json(response)

    def delete_guest(self, trip_id: str, guest_id: str) -> None:
        """Remove a guest."""
        self._request("DELETE", f"/trips/{trip_id}/guests/{guest_id}")
