"""Root URL configuration for django-storefront.

Include from the host project::

    urlpatterns = [
        path("", include("django_storefront.urls")),
    ]
"""

from django.urls import include, path

urlpatterns = [
    path("events/<str:event_id>/", include("django_storefront.checkout.urls")),
    path("events/<str:event_id>/", include("django_storefront.schedule.urls")),
]
