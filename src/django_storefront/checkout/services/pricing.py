"""Price derivation for the storefront cart.

Totals are never stored; they are recomputed from the cart, the event
catalog and the applied promo code every time they are read.  Promo
discounts only ever apply to ticket-type items of ticketed events, never to
add-ons and never to fundraiser donations.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from django_storefront.api.models import Event, Ticket
from django_storefront.checkout.services.cart import Cart
from django_storefront.settings import get_config

_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class CartTotals:
    """Gross total, promo discount and amount due for a cart."""

    total_price: Decimal
    discount_amount: Decimal
    final_price: Decimal


@dataclass(frozen=True, slots=True)
class Availability:
    """Whether a ticket can currently be added to the cart.

    ``reason`` is ``"sold_out"`` or ``"sales_ended"`` for unavailable tickets;
    sold out wins when both apply.
    """

    is_sold_out: bool
    is_sales_ended: bool

    @property
    def is_available(self) -> bool:
        return not (self.is_sold_out or self.is_sales_ended)

    @property
    def reason(self) -> str | None:
        if self.is_sold_out:
            return "sold_out"
        if self.is_sales_ended:
            return "sales_ended"
        return None


def ticket_availability(ticket: Ticket, now: datetime) -> Availability:
    """Check whether *ticket* is sold out or past its sale end date."""
    is_sales_ended = ticket.sale_end_date is not None and ticket.sale_end_date < now
    is_sold_out = ticket.quantity is not None and (ticket.sold or 0) >= ticket.quantity
    return Availability(is_sold_out=is_sold_out, is_sales_ended=is_sales_ended)


def total_tickets_in_cart(cart: Cart, event: Event) -> int:
    """Sum the quantities of cart entries that are ticket types of *event*."""
    ticket_keys = {ticket.type for ticket in event.tickets}
    return sum(entry.quantity for key, entry in cart.items() if key in ticket_keys)


def add_ons_enabled(cart: Cart, event: Event) -> bool:
    """Add-ons can only be selected once at least one ticket is in the cart."""
    return total_tickets_in_cart(cart, event) > 0


def resolve_unit_price(key: str, donation_amount: Decimal | None, event: Event) -> tuple[Decimal, bool]:
    """Return ``(unit_price, is_ticket)`` for a cart key.

    Ticketed events use the catalog price (unknown keys price at zero);
    fundraisers use the donation amount chosen for the entry.
    """
    ticket = event.find_ticket(key)
    if event.is_fundraiser:
        return (donation_amount or Decimal(0)), ticket is not None
    if ticket is not None:
        return ticket.price, True
    add_on = event.find_add_on(key)
    if add_on is not None:
        return add_on.price, False
    return Decimal(0), False


def compute_totals(cart: Cart, event: Event, discount_percent: Decimal | None = None) -> CartTotals:
    """Derive total, discount and final price for a cart.

    Args:
        cart: The current cart.
        event: The event whose catalog prices the cart.
        discount_percent: Percentage of the applied promo code, or ``None``
            when no discount-bearing code is applied.

    Returns:
        A :class:`CartTotals` where ``final_price == total_price -
        discount_amount`` and the discount never exceeds the total.
    """
    total = _ZERO
    discount = _ZERO
    applies_discount = bool(discount_percent) and not event.is_fundraiser
    pct = min(max(discount_percent or Decimal(0), Decimal(0)), Decimal(100))

    for key, entry in cart.items():
        unit_price, is_ticket = resolve_unit_price(key, entry.donation_amount, event)
        line_total = unit_price * entry.quantity
        total += line_total
        if applies_discount and is_ticket:
            discount += _money(line_total * pct / Decimal(100))

    total = _money(total)
    discount = min(discount, total)
    return CartTotals(total_price=total, discount_amount=discount, final_price=total - discount)


def discounted_unit_price(ticket: Ticket, event: Event, discount_percent: Decimal | None) -> Decimal:
    """Ticket price after the applied promo, for strike-through display."""
    if not discount_percent or discount_percent <= 0 or event.is_fundraiser:
        return ticket.price
    return _money(ticket.price * (1 - discount_percent / Decimal(100)))


@dataclass(frozen=True, slots=True)
class QuoteLine:
    """One line of the checkout summary."""

    key: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    is_ticket: bool


@dataclass(frozen=True, slots=True)
class CheckoutQuote:
    """Checkout summary including platform fees and the optional platform donation."""

    lines: list[QuoteLine] = field(default_factory=list)
    subtotal: Decimal = _ZERO
    discount: Decimal = _ZERO
    mandatory_fees: Decimal = _ZERO
    platform_donation: Decimal = _ZERO
    final_total: Decimal = _ZERO


def default_platform_donation(subtotal: Decimal, discount: Decimal, percent: Decimal | None = None) -> Decimal:
    """Suggested platform donation: a share of the discounted subtotal, rounded up to a whole unit."""
    if percent is None:
        percent = get_config().checkout.default_platform_donation_percent
    return Decimal(math.ceil((subtotal - discount) * percent / Decimal(100)))


def checkout_quote(
    cart: Cart,
    event: Event,
    discount_percent: Decimal | None = None,
    platform_donation: Decimal | None = None,
) -> CheckoutQuote:
    """Build the checkout summary for a cart.

    Fundraiser donations below an item's minimum are charged at the minimum.
    Mandatory fees (configured percentage plus fixed amount) apply only when
    something is owed after the discount.

    Args:
        cart: The cart being checked out.
        event: The event whose catalog prices the cart.
        discount_percent: Percentage of the applied promo code, if any.
        platform_donation: Optional tip to the platform; defaults to
            :func:`default_platform_donation`.

    Returns:
        The computed :class:`CheckoutQuote`.
    """
    checkout_config = get_config().checkout
    lines: list[QuoteLine] = []
    for key, entry in cart.items():
        unit_price, is_ticket = resolve_unit_price(key, entry.donation_amount, event)
        if event.is_fundraiser:
            item = event.find_ticket(key) or event.find_add_on(key)
            minimum = (item.minimum_donation if item else None) or Decimal(0)
            unit_price = max(unit_price, minimum)
        lines.append(
            QuoteLine(
                key=key,
                quantity=entry.quantity,
                unit_price=unit_price,
                subtotal=_money(unit_price * entry.quantity),
                is_ticket=is_ticket,
            )
        )

    subtotal = sum((line.subtotal for line in lines), _ZERO)
    discount = _ZERO
    if discount_percent and not event.is_fundraiser:
        ticket_subtotal = sum((line.subtotal for line in lines if line.is_ticket), _ZERO)
        discount = min(_money(ticket_subtotal * discount_percent / Decimal(100)), subtotal)

    after_discount = subtotal - discount
    fees = _ZERO
    if after_discount > 0:
        percent_fee = after_discount * checkout_config.platform_fee_percent / Decimal(100)
        fees = _money(percent_fee + checkout_config.platform_fee_fixed)

    if platform_donation is None:
        platform_donation = default_platform_donation(subtotal, discount) if subtotal > 0 else _ZERO
    platform_donation = max(platform_donation, _ZERO)

    return CheckoutQuote(
        lines=lines,
        subtotal=subtotal,
        discount=discount,
        mandatory_fees=fees,
        platform_donation=platform_donation,
        final_total=_money(after_discount + fees + platform_donation),
    )
