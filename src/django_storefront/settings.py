"""Typed configuration for django-storefront.

Reads a single ``DJANGO_STOREFRONT`` dict from Django settings and exposes it
as composed, frozen dataclasses with sensible defaults.

Usage::

    from django_storefront.settings import get_config

    config = get_config()
    config.api.base_url
    config.checkout.platform_fee_percent
    config.schedule.default_block_title
"""

import functools
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.test.signals import setting_changed


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Remote storefront REST API configuration."""

    base_url: str = "https://api.example.com"
    token: str | None = None
    timeout: float = 30


@dataclass(frozen=True, slots=True)
class CheckoutConfig:
    """Checkout summary and sign-in handoff configuration."""

    platform_fee_percent: Decimal = Decimal("5.9")
    platform_fee_fixed: Decimal = Decimal("0.35")
    default_platform_donation_percent: Decimal = Decimal(10)
    login_url: str = "/accounts/login/"


@dataclass(frozen=True, slots=True)
class ScheduleConfig:
    """Schedule editor defaults."""

    default_block_title: str = "Event Duration"
    default_section_id: str = "default-area"
    default_section_name: str = "Main Venue"


@dataclass(frozen=True, slots=True)
class StorefrontConfig:
    """Top-level django-storefront configuration."""

    api: ApiConfig = field(default_factory=ApiConfig)
    checkout: CheckoutConfig = field(default_factory=CheckoutConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    currency: str = "USD"
    currency_symbol: str = "$"


def _as_decimal(data: dict[str, object], key: str) -> None:
    """Convert a numeric entry of *data* to ``Decimal`` in place."""
    if key in data and isinstance(data[key], (int, float, str)) and not isinstance(data[key], bool):
        data[key] = Decimal(str(data[key]))


@functools.lru_cache(maxsize=1)
def get_config() -> StorefrontConfig:
    """Build and return the storefront configuration.

    Reads ``settings.DJANGO_STOREFRONT`` (a plain dict) and returns a frozen
    :class:`StorefrontConfig`.  The result is cached; the cache is cleared
    automatically when Django's ``setting_changed`` signal fires (e.g. inside
    ``override_settings``).
    """
    raw = getattr(settings, "DJANGO_STOREFRONT", {})
    if not isinstance(raw, Mapping):
        msg = "DJANGO_STOREFRONT must be a mapping (dict-like object)"
        raise TypeError(msg)
    raw_data = dict(raw)

    api_data = raw_data.pop("api", {})
    checkout_data = raw_data.pop("checkout", {})
    schedule_data = raw_data.pop("schedule", {})
    if not isinstance(api_data, Mapping):
        msg = "DJANGO_STOREFRONT['api'] must be a mapping (dict-like object)"
        raise TypeError(msg)
    if not isinstance(checkout_data, Mapping):
        msg = "DJANGO_STOREFRONT['checkout'] must be a mapping (dict-like object)"
        raise TypeError(msg)
    if not isinstance(schedule_data, Mapping):
        msg = "DJANGO_STOREFRONT['schedule'] must be a mapping (dict-like object)"
        raise TypeError(msg)

    checkout_values = dict(checkout_data)
    for key in ("platform_fee_percent", "platform_fee_fixed", "default_platform_donation_percent"):
        _as_decimal(checkout_values, key)

    config = StorefrontConfig(
        api=ApiConfig(**dict(api_data)),
        checkout=CheckoutConfig(**checkout_values),
        schedule=ScheduleConfig(**dict(schedule_data)),
        **raw_data,
    )
    _validate_storefront_config(config)
    return config


def _validate_storefront_config(config: StorefrontConfig) -> None:
    """Validate high-impact configuration values with clear error messages."""
    if not isinstance(config.api.base_url, str) or not config.api.base_url.strip():
        msg = "DJANGO_STOREFRONT['api']['base_url'] must be a non-empty string"
        raise ValueError(msg)
    timeout = config.api.timeout
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        msg = "DJANGO_STOREFRONT['api']['timeout'] must be a positive number"
        raise ValueError(msg)
    for name in ("platform_fee_percent", "platform_fee_fixed", "default_platform_donation_percent"):
        value = getattr(config.checkout, name)
        if not isinstance(value, Decimal) or value < 0:
            msg = f"DJANGO_STOREFRONT['checkout']['{name}'] must be a non-negative number"
            raise ValueError(msg)
    if not isinstance(config.checkout.login_url, str) or not config.checkout.login_url.strip():
        msg = "DJANGO_STOREFRONT['checkout']['login_url'] must be a non-empty string"
        raise ValueError(msg)
    if not isinstance(config.schedule.default_block_title, str) or not config.schedule.default_block_title.strip():
        msg = "DJANGO_STOREFRONT['schedule']['default_block_title'] must be a non-empty string"
        raise ValueError(msg)
    if not isinstance(config.currency, str) or not config.currency.strip():
        msg = "DJANGO_STOREFRONT['currency'] must be a non-empty string"
        raise ValueError(msg)
    if not isinstance(config.currency_symbol, str) or not config.currency_symbol.strip():
        msg = "DJANGO_STOREFRONT['currency_symbol'] must be a non-empty string"
        raise ValueError(msg)


def _clear_config_cache(*, setting: str, **kwargs: object) -> None:  # noqa: ARG001
    """Clear the cached config when Django settings change during tests."""
    if setting == "DJANGO_STOREFRONT":
        get_config.cache_clear()


setting_changed.connect(_clear_config_cache, dispatch_uid="django_storefront.settings.clear_config_cache")
