"""HTTP client for the storefront REST API.

Provides :class:`StorefrontAPIClient` for fetching events, validating promo
codes, recording promo-link clicks and persisting event updates.  Responses
are returned as typed dataclasses from :mod:`django_storefront.api.models`.
"""

import http
import json
import logging
from typing import Any

import httpx

from django_storefront.api.models import Event, PromoValidation, ScheduleBlock
from django_storefront.settings import get_config

logger = logging.getLogger(__name__)


class StorefrontAPIError(RuntimeError):
    """Raised when the storefront API cannot be reached or rejects a request.

    Attributes:
        status_code: The HTTP status of the failed response, or ``None`` for
            connection-level failures.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    """Extract the backend's error message from a failed response.

    Prefers the ``error`` then ``message`` key of a JSON body, falls back to
    a short plain-text body, and finally to the status line.
    """
    fallback = f"HTTP Error: {response.status_code} {response.reason_phrase}"
    text = response.text
    if not text:
        return fallback
    try:
        data = json.loads(text)
    except ValueError:
        return text if len(text) < 200 else fallback
    if isinstance(data, dict):
        return str(data.get("error") or data.get("message") or fallback)
    return fallback


class StorefrontAPIClient:
    """HTTP client for the storefront REST API.

    Args:
        base_url: Root URL of the API, e.g. ``"https://api.example.com/v1"``.
        token: Optional bearer token for authenticated calls (schedule saves).
        timeout: Request timeout in seconds.

    Example::

        client = StorefrontAPIClient.from_settings()
        event = client.fetch_event("evt_123")
        result = client.validate_promo_code(event.id, "SUMMER10")
    """

    def __init__(self, base_url: str, *, token: str | None = None, timeout: float = 30) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

        self.headers: dict[str, str] = {"Accept": "application/json"}
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"

    @classmethod
    def from_settings(cls, *, token: str | None = None) -> "StorefrontAPIClient":
        """Build a client from ``DJANGO_STOREFRONT['api']``.

        Args:
            token: Overrides the configured token (e.g. the signed-in user's).
        """
        api = get_config().api
        return cls(api.base_url, token=token or api.token, timeout=api.timeout)

    def _request(self, method: str, endpoint: str, payload: dict[str, Any] | None = None) -> Any:
        """Send a request and decode the JSON body.

        Args:
            method: HTTP method.
            endpoint: Path relative to :attr:`base_url`, starting with ``/``.
            payload: Optional JSON body.

        Returns:
            The decoded JSON body; an empty dict when the body is empty or not
            JSON.

        Raises:
            StorefrontAPIError: On connection errors and non-2xx responses.
        """
        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s", method, url)
        with httpx.Client(timeout=self.timeout, headers=self.headers) as client:
            try:
                response = client.request(method, url, json=payload)
            except httpx.RequestError as exc:
                msg = f"Storefront API connection error for URL {url}: {exc}"
                raise StorefrontAPIError(msg) from exc

        logger.debug("%s %s -> %d", method, url, response.status_code)
        if response.status_code >= http.HTTPStatus.BAD_REQUEST:
            raise StorefrontAPIError(_error_message(response), status_code=response.status_code)

        if not response.text:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    def fetch_event(self, event_id: str) -> Event:
        """Fetch an event with its catalog and schedule.

        Raises:
            StorefrontAPIError: If the API returns an HTTP error status.
        """
        return Event.from_api(self._request("GET", f"/events/{event_id}"))

    def validate_promo_code(self, event_id: str, code: str) -> PromoValidation:
        """Validate a promo code for an event.

        Args:
            event_id: The event the code should apply to.
            code: The code as entered (upper-cased by the caller).

        Returns:
            The validation result. An unknown or expired code is a normal
            ``valid=False`` result, not an exception.

        Raises:
            StorefrontAPIError: If the validation request itself fails.
        """
        data = self._request("POST", f"/events/{event_id}/promocodes/validate", {"code": code})
        result = PromoValidation.from_api(data if isinstance(data, dict) else {}, requested_code=code)
        logger.debug("Promo code %r for event %s valid=%s", code, event_id, result.valid)
        return result

    def track_promo_click(self, event_id: str, code: str) -> None:
        """Record a click on a promoter's link.

        Fire-and-forget: failures are logged and never raised, so attribution
        problems cannot block the storefront.
        """
        try:
            self._request("POST", "/promotions/track-click", {"event_id": event_id, "code": code})
        except StorefrontAPIError as exc:
            logger.warning("Failed to track promo click for %r on event %s: %s", code, event_id, exc)

    def update_event(self, user_id: str, event_id: str, updates: dict[str, Any]) -> Event:
        """Persist changes to an event.

        ``schedule`` entries may be :class:`ScheduleBlock` instances or
        already-serialized dicts.

        Args:
            user_id: The acting user, for audit logging.
            event_id: The event to update.
            updates: Partial event fields.

        Returns:
            The updated event as returned by the API.

        Raises:
            StorefrontAPIError: If the API returns an HTTP error status.
        """
        payload = dict(updates)
        if "schedule" in payload:
            payload["schedule"] = [
                block.to_api() if isinstance(block, ScheduleBlock) else block for block in payload["schedule"]
            ]
        logger.info("User %s updating event %s (%s)", user_id, event_id, ", ".join(sorted(payload)))
        return Event.from_api(self._request("PATCH", f"/events/{event_id}", payload))
