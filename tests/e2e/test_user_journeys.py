"""
E2E tests for storefront user journeys.

Each test walks one persona through the API from signup onwards:
- first-time customer: browse, price, cart, checkout
- wholesaler: signup, admin approval, dashboard redirect
- saver: open a Gullak plan, autopay cycles, top-up to completion
"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from ddm_jewellers.domain.models import RateQuote
from ddm_jewellers.infrastructure.clients.rates import SampleRatesProvider


def signup_and_signin(client: TestClient, email: str, path: str = "customer", **extra) -> dict:
    body = {
        "first_name": "Kavya",
        "last_name": "Iyer",
        "email": email,
        "password": "kavya-pass",
        "confirm_password": "kavya-pass",
        **extra,
    }
    assert client.post(f"/api/auth/signup/{path}", json=body).status_code == 201
    response = client.post("/api/auth/signin", json={"email": email, "password": "kavya-pass"})
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def sample_rates():
    """Provider chain that resolves straight to the sample figures"""
    quote = RateQuote(
        gold24k=Decimal("6800.00"),
        gold22k=Decimal("6200.00"),
        gold18k=Decimal("5100.00"),
        silver=Decimal("82.50"),
        source=SampleRatesProvider.name,
    )
    with patch("ddm_jewellers.services.market_rates.MarketRateService.fetch_rates", new=AsyncMock(return_value=quote)):
        yield quote


@pytest.mark.integration
def test_first_time_customer_checkout(app, admin_client: TestClient, sample_rates):
    """
    Admin publishes a catalog and refreshes rates; a new customer prices a
    ring, fills a cart and checks out.
    """
    assert admin_client.post("/api/market-rates/refresh").json()["source"] == "Sample Data (Demo)"

    category = admin_client.post("/api/categories", json={"name": "Earrings", "slug": "earrings"}).json()
    studs = admin_client.post(
        "/api/products",
        json={
            "name": "Gold Studs",
            "product_type": "real",
            "material": "22K Gold",
            "weight": 4,
            "making_charges": 600,
            "gemstones_cost": 400,
            "category_id": category["id"],
        },
    ).json()
    anklet = admin_client.post(
        "/api/products",
        json={
            "name": "Silver Anklet",
            "product_type": "real",
            "material": "925 Silver",
            "weight": 30,
            "silver_billing_mode": "fixed_rate",
            "fixed_rate_per_gram": 95,
            "making_charges": 150,
        },
    ).json()

    customer = TestClient(app)
    session = signup_and_signin(customer, "kavya@ddm-jewellers.com")
    assert session["redirect_to"] == "/"

    listed = customer.get("/api/products", params={"category_id": category["id"]}).json()
    assert [p["id"] for p in listed] == [studs["id"]]

    # (4 * 6200 + 600 + 400) * 1.03 = 26574
    pricing = customer.get(f"/api/products/{studs['id']}/pricing").json()
    assert Decimal(pricing["payable"]) == Decimal("26574")

    customer.post("/api/cart", json={"product_id": studs["id"]})
    customer.post("/api/cart", json={"product_id": anklet["id"], "quantity": 2})

    # (30 * 95 + 150) * 1.03 * 2 = 6180
    cart = customer.get("/api/cart").json()
    assert Decimal(cart["total"]) == Decimal("32754")

    order = customer.post("/api/orders", json={"payment_method": "cod"}).json()
    assert Decimal(order["total_amount"]) == Decimal("32754")
    assert customer.get("/api/cart").json()["items"] == []
    assert [o["id"] for o in customer.get("/api/orders").json()] == [order["id"]]

    dashboard = admin_client.get("/api/admin/dashboard").json()
    assert dashboard["total_orders"] == 1
    assert Decimal(dashboard["total_revenue"]) == Decimal("32754")


@pytest.mark.integration
def test_wholesaler_onboarding(app, admin_client: TestClient):
    """A wholesaler stays pending until an admin approves the account"""
    trader = TestClient(app)
    session = signup_and_signin(trader, "kavya@iyer-gems.com", path="wholesaler", business_name="Iyer Gems")

    assert session["user"]["is_approved"] is False
    assert session["redirect_to"] == "/wholesaler-dashboard"
    assert admin_client.get("/api/admin/dashboard").json()["pending_wholesalers"] == 1

    admin_client.put(f"/api/admin/users/{session['user']['id']}/approve")

    assert trader.get("/api/auth/user").json()["is_approved"] is True
    assert admin_client.get("/api/admin/dashboard").json()["pending_wholesalers"] == 0


@pytest.mark.integration
def test_gullak_saver_reaches_target(app, admin_client: TestClient, sample_rates):
    """Daily 18K plan: two autopay cycles then a top-up deposit completes it"""
    admin_client.post("/api/market-rates/refresh")

    saver = TestClient(app)
    signup_and_signin(saver, "saver@ddm-jewellers.com")

    account = saver.post(
        "/api/gullak/accounts",
        json={
            "name": "Anniversary Chain",
            "metal_type": "gold",
            "metal_purity": "18k",
            "payment_amount": 2000,
            "payment_frequency": "daily",
            "target_metal_weight": 2,
        },
    ).json()
    assert Decimal(account["target_amount"]) == Decimal("10200")

    # Due immediately; a second trigger pays again regardless of the due date
    assert admin_client.post("/api/gullak/autopay/run").json()["processed"] == 1
    assert admin_client.post(f"/api/gullak/accounts/{account['id']}/autopay").json()["outcome"] == "paid"

    detail = saver.get(f"/api/gullak/accounts/{account['id']}").json()
    assert Decimal(detail["account"]["current_balance"]) == Decimal("4000")
    assert detail["progress"]["days_remaining"] == 4

    saver.post(f"/api/gullak/accounts/{account['id']}/deposit", json={"amount": 6200})

    detail = saver.get(f"/api/gullak/accounts/{account['id']}").json()
    assert detail["account"]["status"] == "completed"
    assert detail["account"]["total_payments"] == 3
    assert Decimal(detail["progress"]["current_metal_weight"]) == Decimal("2.000000")

    # Completed plans drop out of the sweep
    assert admin_client.post("/api/gullak/autopay/run").json() == {"processed": 0, "completed": 0, "failed": 0}
