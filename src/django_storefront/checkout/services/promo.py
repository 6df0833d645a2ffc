"""Promo code lifecycle for the event storefront.

Two kinds of code can be active at once:

* a *tracking* code, taken from the ``promo`` query parameter or restored
  after a sign-in redirect, which attributes the order to a promoter even
  when it carries no discount;
* an *applied* code, validated by the API, which may carry a percentage
  discount on ticket-type items.

At most one code is applied at a time; applying a new code replaces the old
one.  Validation failures never raise: they surface as an inline error
message for manual entry and are silent for URL or restored codes.
"""

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from django_storefront.api.client import StorefrontAPIError
from django_storefront.api.models import PromoValidation, to_decimal

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid or expired promo code."
VALIDATION_FAILED_MESSAGE = "Validation failed. Please try again."


class PromoClient(Protocol):
    """The slice of :class:`~django_storefront.api.client.StorefrontAPIClient` used here."""

    def validate_promo_code(self, event_id: str, code: str) -> PromoValidation: ...

    def track_promo_click(self, event_id: str, code: str) -> None: ...


class PromoStatus(enum.StrEnum):
    """Where the storefront stands with respect to promo codes."""

    NONE = "none"
    TRACKING = "tracking"
    APPLIED = "applied"


class ValidationSource(enum.StrEnum):
    """What triggered a validation; only manual entry reports errors."""

    MANUAL = "manual"
    URL = "url"
    RESTORED = "restored"


@dataclass(frozen=True, slots=True)
class AppliedPromoCode:
    """A validated promo code."""

    code: str
    discount_percent: Decimal = Decimal(0)
    owner_name: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "discountPercent": float(self.discount_percent),
            "ownerName": self.owner_name,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "AppliedPromoCode":
        return cls(
            code=str(data.get("code") or ""),
            discount_percent=to_decimal(data.get("discountPercent")) or Decimal(0),
            owner_name=data.get("ownerName") or None,
        )


@dataclass(frozen=True, slots=True)
class ValidationTicket:
    """Handle for an in-flight validation request."""

    sequence: int
    code: str
    source: ValidationSource


class PromoCodeManager:
    """Tracks the tracking code, the applied code and the inline error for one event.

    Validation is split into :meth:`begin_validation` and
    :meth:`settle_validation` so callers that resolve requests out of order
    only ever keep the newest response; :meth:`apply`, :meth:`ingest_url_code`
    and :meth:`restore` run both phases synchronously.

    Args:
        event_id: The event codes are validated against.
        client: Object providing ``validate_promo_code`` and
            ``track_promo_click``.
        applied: Previously applied code, when restoring state.
        tracking_code: Previously recorded tracking code.
        last_tracked_code: The last code a click was recorded for.
        error: Previously surfaced inline error.
    """

    def __init__(
        self,
        event_id: str,
        client: PromoClient,
        *,
        applied: AppliedPromoCode | None = None,
        tracking_code: str = "",
        last_tracked_code: str | None = None,
        error: str = "",
    ) -> None:
        self.event_id = event_id
        self.client = client
        self.applied = applied
        self.tracking_code = tracking_code
        self.last_tracked_code = last_tracked_code
        self.error = error
        self._sequence = 0

    @property
    def status(self) -> PromoStatus:
        if self.applied is not None:
            return PromoStatus.APPLIED
        if self.tracking_code:
            return PromoStatus.TRACKING
        return PromoStatus.NONE

    @property
    def discount_percent(self) -> Decimal | None:
        """Percentage of the applied code, or ``None`` when nothing is applied."""
        return self.applied.discount_percent if self.applied is not None else None

    @property
    def attribution_code(self) -> str:
        """Code sent with the order: the applied code, else the tracking code."""
        if self.applied is not None:
            return self.applied.code
        return self.tracking_code

    def begin_validation(self, code: str, source: ValidationSource) -> ValidationTicket:
        """Start validating *code*; any earlier in-flight validation becomes stale.

        Manual entry clears the applied code and error up front, so a failed
        attempt leaves no code applied.
        """
        self._sequence += 1
        if source == ValidationSource.MANUAL:
            self.applied = None
            self.error = ""
        return ValidationTicket(sequence=self._sequence, code=code, source=source)

    def settle_validation(
        self,
        ticket: ValidationTicket,
        result: PromoValidation | None = None,
        *,
        failure: Exception | None = None,
    ) -> bool:
        """Apply the outcome of a validation started with :meth:`begin_validation`.

        Args:
            ticket: The handle returned when the validation started.
            result: The API's answer, when the request succeeded.
            failure: The exception raised by the request, when it failed.

        Returns:
            ``False`` if the response was stale and ignored, ``True`` otherwise.
        """
        if ticket.sequence != self._sequence:
            logger.debug("Ignoring stale validation of %r (request %d)", ticket.code, ticket.sequence)
            return False

        if failure is not None or result is None:
            logger.warning("Promo code validation failed for %r on event %s: %s", ticket.code, self.event_id, failure)
            if ticket.source == ValidationSource.MANUAL:
                self.error = VALIDATION_FAILED_MESSAGE
            return True

        if result.valid:
            self.applied = AppliedPromoCode(
                code=result.code or ticket.code,
                discount_percent=result.discount_percent,
                owner_name=result.owner_name,
            )
            self.error = ""
            logger.info(
                "Applied promo code %r (%s%% off) on event %s",
                self.applied.code,
                self.applied.discount_percent,
                self.event_id,
            )
        elif ticket.source == ValidationSource.MANUAL:
            self.error = INVALID_CODE_MESSAGE
        else:
            logger.debug("Promo code %r is not valid for a discount, keeping it for tracking only", ticket.code)
        return True

    def _validate(self, code: str, source: ValidationSource) -> None:
        ticket = self.begin_validation(code, source)
        try:
            result = self.client.validate_promo_code(self.event_id, code)
        except StorefrontAPIError as exc:
            self.settle_validation(ticket, failure=exc)
        else:
            self.settle_validation(ticket, result)

    def apply(self, code: str) -> bool:
        """Validate and apply a manually entered code.

        Args:
            code: The code as entered (already upper-cased by the form).

        Returns:
            ``True`` when a code ended up applied. Empty input changes
            nothing and returns ``False``.
        """
        code = code.strip()
        if not code:
            return False
        self._validate(code, ValidationSource.MANUAL)
        return self.applied is not None

    def remove(self) -> None:
        """Drop the applied code at the user's request."""
        self._sequence += 1
        self.applied = None
        self.error = ""

    def ingest_url_code(self, code: str | None) -> None:
        """Handle a ``promo`` query parameter.

        The code is always recorded for attribution; a click is tracked once
        per distinct code value; a valid code is applied exactly as if it had
        been entered manually, and an invalid one is silently kept for
        tracking only.
        """
        if not code:
            return
        self.tracking_code = code
        if self.last_tracked_code != code:
            logger.debug("Tracking promo click for %r on event %s", code, self.event_id)
            self.client.track_promo_click(self.event_id, code)
            self.last_tracked_code = code
        self._validate(code, ValidationSource.URL)

    def restore(self, code: str | None) -> None:
        """Re-establish a code saved before a sign-in redirect and re-validate it."""
        if not code:
            return
        self.tracking_code = code
        self._validate(code, ValidationSource.RESTORED)

    def to_state(self) -> dict[str, Any]:
        return {
            "applied": self.applied.to_json() if self.applied is not None else None,
            "trackingCode": self.tracking_code,
            "lastTrackedCode": self.last_tracked_code,
            "error": self.error,
        }

    @classmethod
    def from_state(cls, event_id: str, client: PromoClient, state: dict[str, Any] | None) -> "PromoCodeManager":
        state = state or {}
        applied = state.get("applied")
        return cls(
            event_id,
            client,
            applied=AppliedPromoCode.from_json(applied) if isinstance(applied, dict) else None,
            tracking_code=str(state.get("trackingCode") or ""),
            last_tracked_code=state.get("lastTrackedCode") or None,
            error=str(state.get("error") or ""),
        )
