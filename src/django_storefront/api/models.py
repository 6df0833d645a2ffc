"""Typed dataclasses for storefront API response data.

Provides :class:`Event`, :class:`Ticket`, :class:`AddOn`, :class:`VenueArea`,
:class:`ScheduleBlock` and :class:`PromoValidation` as dataclasses that parse
raw API dicts into well-typed Python objects.  The backend mixes snake_case
and camelCase keys depending on the endpoint, so each ``from_api()``
classmethod accepts both spellings.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO 8601 datetime string, returning ``None`` on failure.

    Naive values are assumed to be UTC so that every timestamp handled by the
    storefront is timezone-aware.

    Args:
        value: An ISO 8601 formatted datetime string (or a datetime).

    Returns:
        An aware ``datetime`` instance, or ``None`` if the value is empty or
        cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif not value or not isinstance(value, str):
        return None
    else:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_datetime(value: datetime) -> str:
    """Serialize an aware datetime as an ISO 8601 UTC string with a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_decimal(value: object, default: Decimal | None = Decimal(0)) -> Decimal | None:
    """Convert an API number to ``Decimal``, returning *default* when absent, malformed or not finite."""
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        return default
    return parsed if parsed.is_finite() else default


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None


class EventType(enum.StrEnum):
    """How an event's catalog is priced."""

    TICKETED = "ticketed"
    FUNDRAISER = "fundraiser"


@dataclass(frozen=True, slots=True)
class Ticket:
    """A ticket type offered by an event.

    Attributes:
        type: Ticket type name; the identity key used in the cart.
        price: Fixed price for ticketed events, recommended donation for
            fundraisers.
        description: Optional description shown next to the ticket.
        minimum_donation: Lowest accepted donation for fundraiser events.
        quantity: Total capacity, or ``None`` when unlimited.
        sold: Number already sold, or ``None`` when unknown.
        sale_end_date: Cutoff after which the ticket can no longer be bought.
        id: Backend inventory identifier.
    """

    type: str
    price: Decimal
    description: str = ""
    minimum_donation: Decimal | None = None
    quantity: int | None = None
    sold: int | None = None
    sale_end_date: datetime | None = None
    id: str | None = None

    @property
    def key(self) -> str:
        return self.type

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Ticket":
        """Construct a ``Ticket`` from a backend inventory dict.

        Args:
            data: A single entry of the event's ``inventory`` (or ``tickets``)
                list.

        Returns:
            A populated ``Ticket`` instance.
        """
        quantity = data.get("quantity_total", data.get("quantity"))
        sold = data.get("quantity_sold", data.get("sold"))
        minimum = data.get("min_donation", data.get("minimumDonation"))
        sale_end = data.get("sale_end_date", data.get("saleEndDate"))
        raw_id = data.get("id")
        return cls(
            type=str(data.get("type") or ""),
            price=to_decimal(data.get("price")) or Decimal(0),
            description=data.get("description") or "",
            minimum_donation=to_decimal(minimum, None),
            quantity=_optional_int(quantity),
            sold=_optional_int(sold),
            sale_end_date=parse_datetime(sale_end),
            id=str(raw_id) if raw_id is not None else None,
        )


@dataclass(frozen=True, slots=True)
class AddOn:
    """An optional extra (merch, parking, ...) offered alongside tickets.

    Attributes:
        name: Add-on name; the identity key used in the cart.
        price: Fixed price for ticketed events, recommended donation for
            fundraisers.
        description: Optional description.
        minimum_donation: Lowest accepted donation for fundraiser events.
        id: Backend identifier.
    """

    name: str
    price: Decimal
    description: str = ""
    minimum_donation: Decimal | None = None
    id: str | None = None

    @property
    def key(self) -> str:
        return self.name

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "AddOn":
        """Construct an ``AddOn`` from a backend add-on dict.

        The backend sometimes returns ``type`` instead of ``name`` for
        add-ons; the name falls back to ``type`` and then to ``"Add-on"``.
        """
        minimum = data["min_donation"] if data.get("min_donation") is not None else data.get("minimumDonation")
        raw_id = data.get("id")
        return cls(
            name=str(data.get("name") or data.get("type") or "Add-on"),
            price=to_decimal(data.get("price")) or Decimal(0),
            description=data.get("description") or "",
            minimum_donation=to_decimal(minimum, None),
            id=str(raw_id) if raw_id is not None else None,
        )


@dataclass(frozen=True, slots=True)
class VenueArea:
    """A named section of the venue (stage, room) that owns schedule blocks."""

    id: str
    name: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "VenueArea":
        return cls(id=str(data.get("id") or ""), name=data.get("name") or "")


@dataclass(frozen=True, slots=True)
class ScheduleBlock:
    """A titled time interval within a venue section's timeline.

    Attributes:
        id: Unique block identifier.
        area_id: Identifier of the :class:`VenueArea` the block belongs to.
        title: Artist or set name.
        start: Block start (aware datetime).
        end: Block end (aware datetime).
    """

    id: str
    area_id: str
    title: str
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ScheduleBlock | None":
        """Construct a ``ScheduleBlock`` from a raw schedule item.

        Returns:
            The parsed block, or ``None`` when either timestamp is missing or
            unparsable.
        """
        start = parse_datetime(data.get("startTime", data.get("start_time")))
        end = parse_datetime(data.get("endTime", data.get("end_time")))
        if start is None or end is None:
            logger.debug("Skipping schedule item %r with unparsable times", data.get("id"))
            return None
        return cls(
            id=str(data.get("id") or ""),
            area_id=str(data.get("areaId", data.get("area_id")) or ""),
            title=data.get("title") or "",
            start=start,
            end=end,
        )

    def to_api(self) -> dict[str, str]:
        """Serialize to the wire shape accepted by the update-event endpoint."""
        return {
            "id": self.id,
            "areaId": self.area_id,
            "title": self.title,
            "startTime": format_datetime(self.start),
            "endTime": format_datetime(self.end),
        }


@dataclass(frozen=True, slots=True)
class Event:
    """An event with its catalog and schedule.

    Attributes:
        id: Event identifier.
        title: Display title.
        type: Whether the catalog is sold at fixed prices or as donations.
        start: Event start, or ``None`` when not yet scheduled.
        end: Event end, or ``None`` when not set.
        tickets: Ticket types on sale.
        add_ons: Optional extras.
        commission: Percentage earned by promoters.
        default_promo_discount: Percentage discount given by promoter codes.
        venue_areas: Sections that own schedule blocks.
        schedule: All schedule blocks across sections.
        status: ``"DRAFT"`` or ``"PUBLISHED"``.
    """

    id: str
    title: str = ""
    type: EventType = EventType.TICKETED
    start: datetime | None = None
    end: datetime | None = None
    tickets: list[Ticket] = field(default_factory=list)
    add_ons: list[AddOn] = field(default_factory=list)
    commission: Decimal = Decimal(0)
    default_promo_discount: Decimal = Decimal(0)
    venue_areas: list[VenueArea] = field(default_factory=list)
    schedule: list[ScheduleBlock] = field(default_factory=list)
    status: str = "PUBLISHED"

    @property
    def is_fundraiser(self) -> bool:
        return self.type == EventType.FUNDRAISER

    def find_ticket(self, key: str) -> Ticket | None:
        return next((t for t in self.tickets if t.type == key), None)

    def find_add_on(self, key: str) -> AddOn | None:
        return next((a for a in self.add_ons if a.name == key), None)

    def is_ended(self, now: datetime) -> bool:
        """Return ``True`` once the event's end (or start, if no end) has passed."""
        cutoff = self.end or self.start
        return cutoff is not None and cutoff < now

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Event":
        """Construct an ``Event`` from a raw event payload.

        Inventory entries sharing a backend id are collapsed, keeping the
        first occurrence.

        Args:
            data: The event object returned by ``GET /events/{id}``.

        Returns:
            A populated ``Event`` instance.
        """
        tickets: list[Ticket] = []
        seen_ids: set[str] = set()
        for item in data.get("inventory") or data.get("tickets") or []:
            raw_id = item.get("id")
            if raw_id is not None:
                if str(raw_id) in seen_ids:
                    continue
                seen_ids.add(str(raw_id))
            tickets.append(Ticket.from_api(item))

        try:
            event_type = EventType(data.get("type") or EventType.TICKETED)
        except ValueError:
            logger.warning("Unknown event type %r for event %s, treating as ticketed", data.get("type"), data.get("id"))
            event_type = EventType.TICKETED

        start = parse_datetime(data.get("start_time") or data.get("start_date") or data.get("date"))
        end = parse_datetime(data.get("end_time") or data.get("end_date") or data.get("endDate")) or start

        schedule = [
            block for block in (ScheduleBlock.from_api(item) for item in data.get("schedule") or []) if block
        ]

        return cls(
            id=str(data.get("id") or ""),
            title=data.get("title") or "",
            type=event_type,
            start=start,
            end=end,
            tickets=tickets,
            add_ons=[AddOn.from_api(item) for item in data.get("addOns") or data.get("add_ons") or []],
            commission=to_decimal(data.get("commission") or data.get("commission_rate")) or Decimal(0),
            default_promo_discount=(
                to_decimal(data.get("defaultPromoDiscount") or data.get("promo_discount_rate")) or Decimal(0)
            ),
            venue_areas=[VenueArea.from_api(item) for item in data.get("venueAreas") or []],
            schedule=schedule,
            status=data.get("status") or "PUBLISHED",
        )


@dataclass(frozen=True, slots=True)
class PromoValidation:
    """Result of validating a promo code against an event.

    Attributes:
        valid: Whether the code may be applied.
        discount_percent: Percentage discount on ticket-type items (0-100).
        code: Canonical code as returned by the backend.
        owner_name: Promoter the code belongs to, for "Supporting ..." copy.
    """

    valid: bool
    discount_percent: Decimal = Decimal(0)
    code: str = ""
    owner_name: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any], *, requested_code: str = "") -> "PromoValidation":
        percent = to_decimal(data.get("discountPercent", data.get("discount_percent"))) or Decimal(0)
        return cls(
            valid=bool(data.get("valid")),
            discount_percent=min(max(percent, Decimal(0)), Decimal(100)),
            code=data.get("code") or requested_code,
            owner_name=data.get("ownerName") or data.get("owner_name") or None,
        )
