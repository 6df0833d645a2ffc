"""Pending-checkout handoff across a sign-in redirect.

An anonymous shopper who presses checkout is sent to sign in.  Before the
redirect the cart and promo code are written to the session; when the
shopper lands back on the same event they are read back once and the slot
is cleared.  Works with any mutable mapping, typically ``request.session``.
"""

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass

from django_storefront.checkout.services.cart import Cart

logger = logging.getLogger(__name__)

PENDING_EVENT_ID_KEY = "pendingCheckoutEventId"
PENDING_CART_KEY = "pendingCheckoutCart"
PENDING_PROMO_CODE_KEY = "pendingCheckoutPromoCode"

_PENDING_KEYS = (PENDING_EVENT_ID_KEY, PENDING_CART_KEY, PENDING_PROMO_CODE_KEY)


@dataclass(frozen=True, slots=True)
class PendingCheckout:
    """What was saved before the redirect.

    ``cart`` is ``None`` when no cart was saved or it could not be parsed.
    """

    event_id: str
    cart: Cart | None
    promo_code: str | None


def save_pending_checkout(
    session: MutableMapping[str, object],
    event_id: str,
    cart: Cart,
    promo_code: str | None = None,
) -> None:
    """Stash the cart and promo code before sending the shopper to sign in.

    Args:
        session: The session mapping.
        event_id: Event being checked out.
        cart: The cart to restore after sign-in.
        promo_code: The applied code, else the tracking code. Not written when
            empty.
    """
    session[PENDING_EVENT_ID_KEY] = event_id
    session[PENDING_CART_KEY] = cart.dumps()
    if promo_code:
        session[PENDING_PROMO_CODE_KEY] = promo_code
    else:
        session.pop(PENDING_PROMO_CODE_KEY, None)
    logger.debug("Saved pending checkout for event %s (%d items)", event_id, len(cart))


def restore_pending_checkout(session: MutableMapping[str, object], event_id: str) -> PendingCheckout | None:
    """Consume the pending checkout saved for *event_id*.

    Args:
        session: The session mapping.
        event_id: The event the shopper returned to.

    Returns:
        The saved checkout, or ``None`` when nothing is pending for this
        event. A pending checkout for another event is left untouched.
    """
    if session.get(PENDING_EVENT_ID_KEY) != event_id:
        return None

    saved_cart = session.get(PENDING_CART_KEY)
    saved_code = session.get(PENDING_PROMO_CODE_KEY)
    for key in _PENDING_KEYS:
        session.pop(key, None)

    cart: Cart | None = None
    if isinstance(saved_cart, str) and saved_cart:
        try:
            cart = Cart.loads(saved_cart)
        except ValueError:
            logger.exception("Failed to restore pending cart for event %s", event_id)

    promo_code = saved_code if isinstance(saved_code, str) and saved_code else None
    logger.debug("Restored pending checkout for event %s", event_id)
    return PendingCheckout(event_id=event_id, cart=cart, promo_code=promo_code)
