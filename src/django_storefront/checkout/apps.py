"""Django app configuration for the storefront checkout app."""

from django.apps import AppConfig


class DjangoStorefrontCheckoutConfig(AppConfig):
    """Configuration for the checkout app."""

    name = "django_storefront.checkout"
    label = "storefront_checkout"
    verbose_name = "Checkout"
