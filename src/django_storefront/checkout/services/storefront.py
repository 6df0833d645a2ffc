"""Storefront orchestration for a single event page visit.

:class:`Storefront` owns the cart and the promo-code manager for one event
and is the single entry point for quantity changes.  Derived totals are
recomputed on every read.  Its state serializes into the session so a visit
survives across requests.
"""

import logging
from collections.abc import MutableMapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from django.utils import timezone

from django_storefront.api.models import Event
from django_storefront.checkout.services.cart import Cart
from django_storefront.checkout.services.donations import settle_donation_amount
from django_storefront.checkout.services.pending import (
    restore_pending_checkout,
    save_pending_checkout,
)
from django_storefront.checkout.services.pricing import (
    CartTotals,
    CheckoutQuote,
    add_ons_enabled,
    checkout_quote,
    compute_totals,
    discounted_unit_price,
    ticket_availability,
    total_tickets_in_cart,
)
from django_storefront.checkout.services.promo import PromoClient, PromoCodeManager
from django_storefront.settings import get_config

logger = logging.getLogger(__name__)


def _money_json(value: Decimal) -> float:
    return float(value)


class Storefront:
    """Cart, promo code and derived totals for one event.

    Args:
        event: The event being shopped.
        client: API client used for promo validation and click tracking.
        cart: Existing cart, when resuming a visit.
        promo: Existing promo manager, when resuming a visit.
    """

    def __init__(
        self,
        event: Event,
        client: PromoClient,
        *,
        cart: Cart | None = None,
        promo: PromoCodeManager | None = None,
    ) -> None:
        self.event = event
        self.client = client
        self.cart = cart if cart is not None else Cart()
        self.promo = promo if promo is not None else PromoCodeManager(event.id, client)
        self.checkout_requested = False

    # -- Derived state --------------------------------------------------------

    @property
    def totals(self) -> CartTotals:
        return compute_totals(self.cart, self.event, self.promo.discount_percent)

    @property
    def total_tickets(self) -> int:
        return total_tickets_in_cart(self.cart, self.event)

    @property
    def add_ons_enabled(self) -> bool:
        return add_ons_enabled(self.cart, self.event)

    def can_change(self, key: str, now: datetime | None = None) -> bool:
        """Whether the quantity control for *key* is enabled.

        Unavailable tickets are locked, and add-ons are locked until a ticket
        is in the cart.
        """
        now = now or timezone.now()
        ticket = self.event.find_ticket(key)
        if ticket is not None:
            if self.event.is_fundraiser:
                return True
            return ticket_availability(ticket, now).is_available
        if self.event.find_add_on(key) is not None:
            return self.event.is_fundraiser or self.add_ons_enabled
        return False

    # -- Mutations ------------------------------------------------------------

    def change_quantity(
        self,
        key: str,
        quantity: int,
        donation_amount: Decimal | str | float | None = None,
        *,
        now: datetime | None = None,
    ) -> bool:
        """Handle a quantity change from a ticket row, add-on row or donation selector.

        Args:
            key: Ticket type or add-on name.
            quantity: New absolute quantity; negative values are clamped to 0.
            donation_amount: Chosen donation per unit (fundraisers only).
                Malformed values count as ``0``; the result is raised to the
                item's minimum donation.  When absent, the amount already in
                the cart is kept, else the item's recommended price is used.
            now: Reference time for sale-end checks.

        Returns:
            ``False`` when the control is locked and the change was ignored.
        """
        if not self.can_change(key, now):
            logger.debug("Ignoring quantity change for locked item %r on event %s", key, self.event.id)
            return False
        settled = None
        if self.event.is_fundraiser:
            settled = self._settle_donation(key, donation_amount)
        self.cart.set_item_quantity(key, max(quantity, 0), settled)
        return True

    def _settle_donation(self, key: str, donation_amount: Decimal | str | float | None) -> Decimal:
        item = self.event.find_ticket(key) or self.event.find_add_on(key)
        if donation_amount is None:
            current = self.cart.get(key)
            if current is not None and current.donation_amount is not None:
                donation_amount = current.donation_amount
            elif item is not None:
                donation_amount = item.price
        return settle_donation_amount(donation_amount, item.minimum_donation if item else None)

    def apply_promo_code(self, code: str) -> bool:
        return self.promo.apply(code.strip().upper())

    def remove_promo_code(self) -> None:
        self.promo.remove()

    def ingest_url_promo(self, code: str | None) -> None:
        self.promo.ingest_url_code(code)

    def restore_pending_checkout(self, session: MutableMapping[str, Any]) -> bool:
        """Resume a checkout interrupted by sign-in.

        Returns:
            ``True`` when a saved cart was restored; the checkout should then
            be reopened.
        """
        pending = restore_pending_checkout(session, self.event.id)
        if pending is None or pending.cart is None:
            return False
        self.cart = pending.cart
        self.promo.restore(pending.promo_code)
        self.checkout_requested = True
        logger.info("Restored pending checkout for event %s", self.event.id)
        return True

    def begin_checkout(self, session: MutableMapping[str, Any], *, authenticated: bool) -> CheckoutQuote | None:
        """Start checkout.

        Anonymous shoppers get their cart stashed in *session* and ``None``
        back; the caller redirects them to sign in.

        Returns:
            The checkout quote for authenticated shoppers.
        """
        if not authenticated:
            save_pending_checkout(session, self.event.id, self.cart, self.promo.attribution_code)
            return None
        return self.quote()

    def quote(self, platform_donation: Decimal | None = None) -> CheckoutQuote:
        return checkout_quote(self.cart, self.event, self.promo.discount_percent, platform_donation)

    # -- Serialization --------------------------------------------------------

    def snapshot(self, now: datetime | None = None) -> dict[str, Any]:
        """JSON-friendly view of the storefront for the event page."""
        now = now or timezone.now()
        totals = self.totals
        discount_percent = self.promo.discount_percent
        tickets = []
        for ticket in self.event.tickets:
            availability = ticket_availability(ticket, now)
            tickets.append(
                {
                    "type": ticket.type,
                    "price": _money_json(ticket.price),
                    "discountedPrice": _money_json(discounted_unit_price(ticket, self.event, discount_percent)),
                    "quantity": self.cart.quantity_of(ticket.type),
                    "available": self.event.is_fundraiser or availability.is_available,
                    "unavailableReason": None if self.event.is_fundraiser else availability.reason,
                }
            )
        add_ons = [
            {
                "name": add_on.name,
                "price": _money_json(add_on.price),
                "quantity": self.cart.quantity_of(add_on.name),
                "enabled": self.can_change(add_on.name, now),
            }
            for add_on in self.event.add_ons
        ]
        applied = self.promo.applied
        config = get_config()
        return {
            "eventId": self.event.id,
            "eventType": str(self.event.type),
            "currency": config.currency,
            "currencySymbol": config.currency_symbol,
            "cart": self.cart.to_json(),
            "tickets": tickets,
            "addOns": add_ons,
            "totalTicketsInCart": self.total_tickets,
            "totalPrice": _money_json(totals.total_price),
            "discountAmount": _money_json(totals.discount_amount),
            "finalPrice": _money_json(totals.final_price),
            "promo": {
                "status": str(self.promo.status),
                "applied": applied.to_json() if applied is not None else None,
                "trackingCode": self.promo.tracking_code,
                "error": self.promo.error,
            },
            "canCheckout": totals.total_price > 0 and not self.event.is_ended(now),
            "checkoutRequested": self.checkout_requested,
        }

    def to_state(self) -> dict[str, Any]:
        return {"cart": self.cart.to_json(), "promo": self.promo.to_state()}

    @classmethod
    def from_state(cls, event: Event, client: PromoClient, state: dict[str, Any] | None) -> "Storefront":
        state = state or {}
        return cls(
            event,
            client,
            cart=Cart.from_json(state.get("cart")),
            promo=PromoCodeManager.from_state(event.id, client, state.get("promo")),
        )
