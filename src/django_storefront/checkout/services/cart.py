"""In-memory cart for the event storefront.

The cart maps an item identity key (ticket type or add-on name) to the
selected quantity and, for fundraisers, the chosen donation amount.  A key
that is absent means zero quantity; entries are deleted rather than zeroed so
``len(cart)`` is always the number of selected items.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal

from django_storefront.api.models import to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CartEntry:
    """Quantity (and optional donation amount) selected for one item."""

    quantity: int
    donation_amount: Decimal | None = None

    def to_json(self) -> dict[str, object]:
        data: dict[str, object] = {"quantity": self.quantity}
        if self.donation_amount is not None:
            data["donationAmount"] = float(self.donation_amount)
        return data


class Cart(Mapping[str, CartEntry]):
    """Mapping from item identity key to :class:`CartEntry`.

    Mutations go through :meth:`set_item_quantity`; the last write for a key
    wins.
    """

    def __init__(self, entries: Mapping[str, CartEntry] | None = None) -> None:
        self._entries: dict[str, CartEntry] = {}
        for key, entry in (entries or {}).items():
            self.set_item_quantity(key, entry.quantity, entry.donation_amount)

    def __getitem__(self, key: str) -> CartEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Cart({self._entries!r})"

    def quantity_of(self, key: str) -> int:
        entry = self._entries.get(key)
        return entry.quantity if entry is not None else 0

    def set_item_quantity(self, key: str, quantity: int, donation_amount: Decimal | None = None) -> None:
        """Upsert or remove an item.

        Args:
            key: Ticket type or add-on name.
            quantity: New absolute quantity. ``0`` removes the key.
            donation_amount: Chosen donation per unit (fundraisers only).
        """
        if quantity > 0:
            self._entries[key] = CartEntry(quantity=quantity, donation_amount=donation_amount)
        else:
            self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def to_json(self) -> dict[str, dict[str, object]]:
        """Serialize to the checkout wire shape ``{key: {quantity, donationAmount?}}``."""
        return {key: entry.to_json() for key, entry in self._entries.items()}

    def dumps(self) -> str:
        return json.dumps(self.to_json())

    @classmethod
    def from_json(cls, data: object) -> "Cart":
        """Build a cart from the wire shape, skipping malformed entries.

        Args:
            data: A mapping of ``{key: {"quantity": n, "donationAmount": x}}``.

        Returns:
            The populated cart. Entries whose quantity is not a positive
            integer are dropped.
        """
        cart = cls()
        if not isinstance(data, Mapping):
            return cart
        for key, raw in data.items():
            if not isinstance(raw, Mapping):
                logger.debug("Dropping malformed cart entry %r", key)
                continue
            quantity = raw.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int):
                logger.debug("Dropping cart entry %r with non-integer quantity", key)
                continue
            cart.set_item_quantity(str(key), quantity, to_decimal(raw.get("donationAmount"), None))
        return cart

    @classmethod
    def loads(cls, text: str) -> "Cart":
        """Parse a JSON string produced by :meth:`dumps`.

        Raises:
            ValueError: If *text* is not valid JSON.
        """
        return cls.from_json(json.loads(text))
