"""Django app configuration for the schedule editor app."""

from django.apps import AppConfig


class DjangoStorefrontScheduleConfig(AppConfig):
    """Configuration for the schedule app."""

    name = "django_storefront.schedule"
    label = "storefront_schedule"
    verbose_name = "Schedule"
