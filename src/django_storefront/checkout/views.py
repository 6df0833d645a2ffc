"""JSON views for the event storefront.

Each view rebuilds the :class:`~django_storefront.checkout.services.storefront.Storefront`
for the event from the session, applies the request, stores the state back
and answers with a snapshot for the page to render.  All views are scoped to
an event via the ``event_id`` URL kwarg.
"""

import json
import logging
from typing import Any
from urllib.parse import urlencode

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.urls import reverse
from django.views import View

from django_storefront.api.client import StorefrontAPIClient, StorefrontAPIError
from django_storefront.api.models import to_decimal
from django_storefront.checkout.services.storefront import Storefront
from django_storefront.settings import get_config

logger = logging.getLogger(__name__)

_STATE_KEY_PREFIX = "storefront:"


def _json_body(request: HttpRequest) -> dict[str, Any] | None:
    """Decode a JSON object body, returning ``None`` when malformed."""
    try:
        data = json.loads(request.body or b"{}")
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _bad_request(message: str) -> JsonResponse:
    return JsonResponse({"error": message}, status=400)


class StorefrontMixin:
    """Resolves the event and the visitor's storefront state.

    Stores the storefront on ``self.storefront`` before dispatching. When the
    event cannot be loaded a 502 JSON error is returned instead.
    """

    storefront: Storefront
    kwargs: dict[str, str]

    def get_client(self) -> StorefrontAPIClient:
        return StorefrontAPIClient.from_settings()

    def state_key(self) -> str:
        return f"{_STATE_KEY_PREFIX}{self.kwargs['event_id']}"

    def save_state(self, request: HttpRequest) -> None:
        request.session[self.state_key()] = self.storefront.to_state()

    def dispatch(self, request: HttpRequest, *args: str, **kwargs: str) -> HttpResponse:
        """Load the event and rebuild the storefront before dispatching.

        Args:
            request: The incoming HTTP request.
            *args: Positional arguments from the URL resolver.
            **kwargs: Keyword arguments from the URL pattern.

        Returns:
            The HTTP response.
        """
        client = self.get_client()
        try:
            event = client.fetch_event(kwargs["event_id"])
        except StorefrontAPIError as exc:
            logger.warning("Failed to load event %s: %s", kwargs["event_id"], exc)
            return JsonResponse({"error": "Failed to load event details."}, status=502)
        self.storefront = Storefront.from_state(event, client, request.session.get(self.state_key()))
        return super().dispatch(request, *args, **kwargs)  # type: ignore[misc]

    def respond(self, request: HttpRequest, **extra: object) -> JsonResponse:
        self.save_state(request)
        return JsonResponse({**self.storefront.snapshot(), **extra})


class EventStorefrontView(StorefrontMixin, View):
    """Event page state.

    Restores a checkout interrupted by sign-in and picks up the ``promo``
    query parameter.
    """

    def get(self, request: HttpRequest, **kwargs: str) -> HttpResponse:
        if request.user.is_authenticated:
            self.storefront.restore_pending_checkout(request.session)
        self.storefront.ingest_url_promo(request.GET.get("promo"))
        return self.respond(request)


class CartItemView(StorefrontMixin, View):
    """Change the quantity of one item; the ``onChange`` endpoint."""

    def post(self, request: HttpRequest, **kwargs: str) -> HttpResponse:
        data = _json_body(request)
        if data is None:
            return _bad_request("Request body must be a JSON object.")
        key = data.get("key")
        quantity = data.get("quantity")
        if not isinstance(key, str) or isinstance(quantity, bool) or not isinstance(quantity, int):
            return _bad_request("'key' must be a string and 'quantity' an integer.")
        accepted = self.storefront.change_quantity(key, quantity, data.get("donationAmount"))
        return self.respond(request, accepted=accepted)


class PromoCodeView(StorefrontMixin, View):
    """Apply (``POST``) or remove (``DELETE``) a promo code."""

    def post(self, request: HttpRequest, **kwargs: str) -> HttpResponse:
        data = _json_body(request)
        if data is None:
            return _bad_request("Request body must be a JSON object.")
        self.storefront.apply_promo_code(str(data.get("code") or ""))
        return self.respond(request)

    def delete(self, request: HttpRequest, **kwargs: str) -> HttpResponse:
        self.storefront.remove_promo_code()
        return self.respond(request)


class CheckoutView(StorefrontMixin, View):
    """Start checkout.

    Anonymous shoppers are sent to sign in with their cart saved for the
    return trip; signed-in shoppers get the checkout summary.
    """

    def post(self, request: HttpRequest, **kwargs: str) -> HttpResponse:
        data = _json_body(request)
        if data is None:
            return _bad_request("Request body must be a JSON object.")
        if self.storefront.totals.total_price <= 0:
            return _bad_request("Your cart is empty.")

        authenticated = bool(request.user.is_authenticated)
        quote = self.storefront.begin_checkout(request.session, authenticated=authenticated)
        if quote is None:
            self.save_state(request)
            event_page = reverse("checkout:storefront", kwargs={"event_id": kwargs["event_id"]})
            next_url = str(data.get("next") or event_page)
            login_url = get_config().checkout.login_url
            return JsonResponse({"redirect": f"{login_url}?{urlencode({'next': next_url})}"})

        if "platformDonation" in data:
            quote = self.storefront.quote(to_decimal(data.get("platformDonation")))
        self.save_state(request)
        return JsonResponse(
            {
                "eventId": self.storefront.event.id,
                "cart": self.storefront.cart.to_json(),
                "promoCode": self.storefront.promo.attribution_code or None,
                "lines": [
                    {
                        "key": line.key,
                        "quantity": line.quantity,
                        "unitPrice": float(line.unit_price),
                        "subtotal": float(line.subtotal),
                    }
                    for line in quote.lines
                ],
                "subtotal": float(quote.subtotal),
                "discount": float(quote.discount),
                "mandatoryFees": float(quote.mandatory_fees),
                "platformDonation": float(quote.platform_donation),
                "finalTotal": float(quote.final_total),
            }
        )
