"""URL configuration for the storefront checkout app.

Mount under an event-scoped prefix in the host project::

    urlpatterns = [
        path("events/<str:event_id>/", include("django_storefront.checkout.urls")),
    ]
"""

from django.urls import path

from django_storefront.checkout.views import (
    CartItemView,
    CheckoutView,
    EventStorefrontView,
    PromoCodeView,
)

app_name = "checkout"

urlpatterns = [
    path("", EventStorefrontView.as_view(), name="storefront"),
    path("cart/", CartItemView.as_view(), name="cart-item"),
    path("promo/", PromoCodeView.as_view(), name="promo-code"),
    path("checkout/", CheckoutView.as_view(), name="checkout"),
]
