"""Tests for the storefront JSON views and URL routing.

Covers the event page state, quantity changes, promo codes and the checkout
handoff via the Django test client, with the API client mocked out.
"""

import json
from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest
from django.test import Client
from django.urls import reverse
from django.utils import timezone

from django_storefront.api.client import StorefrontAPIClient, StorefrontAPIError
from django_storefront.api.models import AddOn, Event, EventType, PromoValidation, Ticket


@pytest.fixture
def event():
    now = timezone.now()
    return Event(
        id="evt_1",
        title="Summer Fest",
        start=now + timedelta(days=30),
        end=now + timedelta(days=30, hours=4),
        tickets=[Ticket(type="GA", price=Decimal(50)), Ticket(type="VIP", price=Decimal(120), quantity=2, sold=2)],
        add_ons=[AddOn(name="Parking", price=Decimal(15))],
    )


@pytest.fixture
def api(event):
    client = Mock(spec=StorefrontAPIClient)
    client.fetch_event.return_value = event
    client.validate_promo_code.return_value = PromoValidation(valid=False)
    with patch.object(StorefrontAPIClient, "from_settings", return_value=client):
        yield client


@pytest.fixture
def user(db, django_user_model):
    return django_user_model.objects.create_user(username="shopper", password="password")


def _url(name, event_id="evt_1"):
    return reverse(f"checkout:{name}", kwargs={"event_id": event_id})


def _post(client, name, payload):
    return client.post(_url(name), data=json.dumps(payload), content_type="application/json")


# ---------------------------------------------------------------------------
# Event page
# ---------------------------------------------------------------------------


class TestEventStorefrontView:
    @pytest.mark.unit
    def test_url_resolves(self):
        assert _url("storefront") == "/events/evt_1/"
        assert _url("checkout") == "/events/evt_1/checkout/"

    def test_returns_snapshot(self, api):
        response = Client().get(_url("storefront"))

        assert response.status_code == 200
        data = response.json()
        assert data["eventId"] == "evt_1"
        assert [row["type"] for row in data["tickets"]] == ["GA", "VIP"]
        assert data["tickets"][1]["unavailableReason"] == "sold_out"
        assert data["addOns"][0]["enabled"] is False
        api.fetch_event.assert_called_once_with("evt_1")

    def test_event_load_failure(self, api):
        api.fetch_event.side_effect = StorefrontAPIError("down", status_code=503)

        response = Client().get(_url("storefront"))

        assert response.status_code == 502
        assert response.json() == {"error": "Failed to load event details."}

    def test_promo_query_param_tracked(self, api):
        response = Client().get(_url("storefront"), {"promo": "ALEX"})

        api.track_promo_click.assert_called_once_with("evt_1", "ALEX")
        assert response.json()["promo"] == {"status": "tracking", "applied": None, "trackingCode": "ALEX", "error": ""}


# ---------------------------------------------------------------------------
# Cart and promo codes
# ---------------------------------------------------------------------------


class TestCartItemView:
    def test_quantity_persists_across_requests(self, api):
        client = Client()
        response = _post(client, "cart-item", {"key": "GA", "quantity": 2})

        assert response.json()["accepted"] is True
        data = client.get(_url("storefront")).json()
        assert data["cart"] == {"GA": {"quantity": 2}}
        assert data["totalPrice"] == 100.0

    def test_locked_item_not_accepted(self, api):
        response = _post(Client(), "cart-item", {"key": "Parking", "quantity": 1})

        assert response.status_code == 200
        assert response.json()["accepted"] is False
        assert response.json()["cart"] == {}

    @pytest.mark.parametrize(
        "payload",
        [{"key": "GA"}, {"key": 3, "quantity": 1}, {"key": "GA", "quantity": "2"}, {"key": "GA", "quantity": True}],
    )
    def test_bad_payload(self, api, payload):
        assert _post(Client(), "cart-item", payload).status_code == 400

    def test_malformed_json(self, api):
        response = Client().post(_url("cart-item"), data="{nope", content_type="application/json")
        assert response.status_code == 400

    @pytest.mark.parametrize(("payload", "expected"), [({}, 25.0), ({"donationAmount": "abc"}, 10.0)])
    def test_fundraiser_donation_settled(self, api, event, user, payload, expected):
        gift = Ticket(type="Gift", price=Decimal(25), minimum_donation=Decimal(10))
        api.fetch_event.return_value = Event(
            id="evt_1", type=EventType.FUNDRAISER, start=event.start, end=event.end, tickets=[gift]
        )
        client = Client()
        client.force_login(user)

        data = _post(client, "cart-item", {"key": "Gift", "quantity": 2, **payload}).json()
        assert data["cart"] == {"Gift": {"quantity": 2, "donationAmount": expected}}
        assert data["totalPrice"] == expected * 2

        quote = _post(client, "checkout", {}).json()
        assert quote["subtotal"] == data["totalPrice"]


class TestPromoCodeView:
    def test_apply_and_remove(self, api):
        api.validate_promo_code.return_value = PromoValidation(valid=True, discount_percent=Decimal(10), code="SUMMER")
        client = Client()
        _post(client, "cart-item", {"key": "GA", "quantity": 2})

        data = _post(client, "promo-code", {"code": "summer"}).json()

        api.validate_promo_code.assert_called_once_with("evt_1", "SUMMER")
        assert data["promo"]["status"] == "applied"
        assert data["discountAmount"] == 10.0
        assert data["finalPrice"] == 90.0

        data = client.delete(_url("promo-code")).json()
        assert data["promo"]["status"] == "none"
        assert data["finalPrice"] == 100.0

    def test_invalid_code_error(self, api):
        data = _post(Client(), "promo-code", {"code": "NOPE"}).json()
        assert data["promo"]["error"] == "Invalid or expired promo code."


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


class TestCheckoutView:
    def test_empty_cart_rejected(self, api):
        response = _post(Client(), "checkout", {})
        assert response.status_code == 400

    def test_anonymous_redirected_to_login(self, api):
        client = Client()
        _post(client, "cart-item", {"key": "GA", "quantity": 1})

        response = _post(client, "checkout", {})

        assert response.status_code == 200
        assert response.json() == {"redirect": "/accounts/login/?next=%2Fevents%2Fevt_1%2F"}
        assert client.session["pendingCheckoutEventId"] == "evt_1"

    def test_sign_in_restores_pending_checkout(self, api, user):
        client = Client()
        _post(client, "cart-item", {"key": "GA", "quantity": 2})
        _post(client, "checkout", {})
        client.force_login(user)

        data = client.get(_url("storefront")).json()

        assert data["checkoutRequested"] is True
        assert data["cart"] == {"GA": {"quantity": 2}}
        assert "pendingCheckoutEventId" not in client.session

    def test_authenticated_gets_quote(self, api, user):
        client = Client()
        client.force_login(user)
        _post(client, "cart-item", {"key": "GA", "quantity": 1})

        data = _post(client, "checkout", {"platformDonation": 0}).json()

        assert data["eventId"] == "evt_1"
        assert data["subtotal"] == 50.0
        assert data["mandatoryFees"] == 3.3
        assert data["platformDonation"] == 0.0
        assert data["finalTotal"] == 53.3
        assert data["lines"] == [{"key": "GA", "quantity": 1, "unitPrice": 50.0, "subtotal": 50.0}]
