"""Client for the remote storefront REST API."""

from django_storefront.api.client import StorefrontAPIClient, StorefrontAPIError
from django_storefront.api.models import (
    AddOn,
    Event,
    EventType,
    PromoValidation,
    ScheduleBlock,
    Ticket,
    VenueArea,
)

__all__ = [
    "AddOn",
    "Event",
    "EventType",
    "PromoValidation",
    "ScheduleBlock",
    "StorefrontAPIClient",
    "StorefrontAPIError",
    "Ticket",
    "VenueArea",
]
