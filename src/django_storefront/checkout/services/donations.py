"""Donation amount input handling for fundraiser items.

Malformed amounts are never an error: while typing, unparsable text is
ignored; on blur the value is coerced to a number and raised to the item's
minimum donation.
"""

from decimal import Decimal, InvalidOperation


def parse_donation_amount(text: str) -> Decimal | None:
    """Parse the amount field while the user is typing.

    Args:
        text: Raw input text.

    Returns:
        The parsed amount, or ``None`` when the field is empty or the text is
        not a number (the caller keeps its previous value in that case).
    """
    text = text.strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def coerce_donation_amount(value: Decimal | str | float | None) -> Decimal:
    """Turn any pending field value into a number, using ``0`` for garbage."""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal(0)
    parsed = parse_donation_amount(str(value))
    return parsed if parsed is not None else Decimal(0)


def settle_donation_amount(value: Decimal | str | float | None, minimum: Decimal | None) -> Decimal:
    """Finalize the amount on blur, clamping it up to *minimum*."""
    amount = coerce_donation_amount(value)
    floor = minimum or Decimal(0)
    return max(amount, floor)
