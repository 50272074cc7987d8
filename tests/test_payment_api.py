from datetime import datetime, timedelta, timezone

import stripe

from conftest import make_subscription
from core.exceptions import ProcessorError, ProcessorResourceMissing
from models.models import Company, PaymentTransaction
from repositories.transaction_store import TransactionStore
from services.payment_service import PaymentService
from services.stripe_gateway import StripeGateway


# ------------------------------------------------------------
# Payment intents
# ------------------------------------------------------------
def test_create_payment_intent(client, fake_stripe, create_company, load):
    company = create_company(stripe_account_id="acct_1")

    response = client.post(
        "/api/stripe/create-payment-intent",
        json={
            "company_id": company.id,
            "amount": 5000,
            "currency": "eur",
            "customer_id": "customer-42",
            "application_fee_amount": 250,
            "metadata": {"orderId": 17},
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["client_secret"] == "pi_test_123_secret_abc"
    assert body["payment_intent_id"] == "pi_test_123"

    [params] = fake_stripe.called("create_payment_intent")
    assert params["destination_account"] == "acct_1"
    assert params["application_fee_amount"] == 250
    assert params["metadata"] == {"orderId": "17", "companyId": company.id, "customerId": "customer-42"}

    stored = load(PaymentTransaction, body["transaction_id"])
    assert stored.status == "pending"
    assert stored.internal_status == "awaiting_approval"
    assert stored.stripe_payment_intent_id == "pi_test_123"
    assert stored.payment_metadata == {"orderId": 17, "customerId": "customer-42"}


def test_create_payment_intent_requires_connected_company(client, fake_stripe, create_company):
    company = create_company()

    response = client.post(
        "/api/stripe/create-payment-intent",
        json={"company_id": company.id, "amount": 5000, "currency": "eur",
              "customer_id": "c", "application_fee_amount": 100},
    )

    assert response.status_code == 404
    assert response.json() == {"detail": "Company not found or not connected to Stripe."}
    assert fake_stripe.calls == []


def test_create_payment_intent_rejects_fee_above_amount(client, create_company):
    company = create_company(stripe_account_id="acct_1")

    response = client.post(
        "/api/stripe/create-payment-intent",
        json={"company_id": company.id, "amount": 100, "currency": "eur",
              "customer_id": "c", "application_fee_amount": 500},
    )

    assert response.status_code == 422


def test_create_payment_intent_stripe_error_returns_500(client, fake_stripe, create_company, mocker):
    company = create_company(stripe_account_id="acct_1")
    mocker.patch.object(
        fake_stripe,
        "create_payment_intent",
        side_effect=ProcessorError("Stripe payment intent creation failed", upstream_message="Your card was declined."),
    )

    response = client.post(
        "/api/stripe/create-payment-intent",
        json={"company_id": company.id, "amount": 5000, "currency": "eur",
              "customer_id": "c", "application_fee_amount": 100},
    )

    assert response.status_code == 500
    assert response.json() == {
        "detail": "Stripe payment intent creation failed",
        "error": "Your card was declined.",
    }


# ------------------------------------------------------------
# Checkout sessions
# ------------------------------------------------------------
def test_checkout_subscription_creates_billing_customer_once(client, fake_stripe, create_company, load):
    company = create_company()
    payload = {"company_id": company.id, "mode": "subscription", "price_id": "price_basic"}

    first = client.post("/api/stripe/checkout-session", json=payload)
    second = client.post("/api/stripe/checkout-session", json=payload)

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json() == {
        "checkout_url": "https://checkout.stripe.test/cs_test_1",
        "session_id": "cs_test_1",
        "mode": "subscription",
    }
    assert len(fake_stripe.called("create_customer")) == 1
    assert load(Company, company.id).stripe_customer_id == "cus_created_1"
    assert fake_stripe.called("create_checkout_session")[0]["customer"] == "cus_created_1"


def test_checkout_payment_uses_destination_charge(client, fake_stripe, create_company):
    company = create_company(stripe_account_id="acct_1")

    response = client.post(
        "/api/stripe/checkout-session",
        json={"company_id": company.id, "mode": "payment", "amount": 2000,
              "product_name": "Haircut", "application_fee_amount": 200},
    )

    assert response.status_code == 200
    [params] = fake_stripe.called("create_checkout_session")
    assert params["payment_intent_data"] == {
        "application_fee_amount": 200,
        "transfer_data": {"destination": "acct_1"},
    }


def test_checkout_subscription_requires_price(client, create_company):
    company = create_company()

    response = client.post("/api/stripe/checkout-session", json={"company_id": company.id, "mode": "subscription"})

    assert response.status_code == 422


# ------------------------------------------------------------
# Subscription cancellation
# ------------------------------------------------------------
def test_cancel_subscription_marks_transaction(client, fake_stripe, create_company, create_transaction, load):
    company = create_company()
    tx = create_transaction(
        company.id,
        stripe_payment_intent_id="pi_sub",
        stripe_subscription_id="sub_1",
        status="succeeded",
        payment_metadata={"plan": "premium"},
    )

    response = client.delete("/api/stripe/subscriptions/sub_1")

    assert response.status_code == 200
    assert response.json()["transaction_id"] == tx.id
    assert response.json()["status"] == "canceled"
    stored = load(PaymentTransaction, tx.id)
    assert stored.status == "canceled"
    assert stored.internal_status == "canceled_by_user"
    assert stored.payment_metadata["plan"] == "premium"
    assert "canceledAt" in stored.payment_metadata


def test_cancel_subscription_without_local_row(client):
    response = client.delete("/api/stripe/subscriptions/sub_remote_only")

    assert response.status_code == 200
    assert response.json()["transaction_id"] is None


def test_cancel_missing_subscription_returns_404(client, fake_stripe):
    fake_stripe.cancel_error = ProcessorResourceMissing(
        "Stripe subscription cancellation failed", upstream_message="No such subscription", code="resource_missing"
    )

    response = client.delete("/api/stripe/subscriptions/sub_gone")

    assert response.status_code == 404
    assert response.json() == {"detail": "Subscription sub_gone not found"}


def test_cancel_subscription_other_stripe_error_returns_500(client, fake_stripe):
    fake_stripe.cancel_error = ProcessorError("Stripe subscription cancellation failed", upstream_message="rate limited")

    response = client.delete("/api/stripe/subscriptions/sub_1")

    assert response.status_code == 500
    assert response.json()["error"] == "rate limited"


# ------------------------------------------------------------
# History and single transaction
# ------------------------------------------------------------
def test_payment_history_pages_newest_first(client, create_company, create_transaction):
    company = create_company()
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for i in range(5):
        create_transaction(
            company.id,
            stripe_payment_intent_id=f"pi_{i}",
            created_at=start + timedelta(days=i),
            status="succeeded" if i % 2 == 0 else "pending",
        )

    response = client.get(f"/api/stripe/history/{company.id}", params={"limit": 2, "offset": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 5
    assert body["limit"] == 2
    assert body["offset"] == 1
    assert [row["stripe_payment_intent_id"] for row in body["data"]] == ["pi_3", "pi_2"]


def test_payment_history_filters(client, create_company, create_transaction):
    company = create_company()
    other = create_company(name="Other Co", email="other@acme.example.com")
    create_transaction(company.id, stripe_payment_intent_id="pi_a", status="succeeded", customer="alice")
    create_transaction(company.id, stripe_payment_intent_id="pi_b", status="pending", customer="alice")
    create_transaction(company.id, stripe_payment_intent_id="pi_c", status="succeeded", customer="bob")
    create_transaction(other.id, stripe_payment_intent_id="pi_d", status="succeeded", customer="alice")

    response = client.get(
        f"/api/stripe/history/{company.id}", params={"status": "succeeded", "customer_id": "alice"}
    )

    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["stripe_payment_intent_id"] == "pi_a"


def test_payment_history_unknown_company_returns_404(client):
    response = client.get("/api/stripe/history/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"detail": "Company not found"}


def test_payment_history_rejects_out_of_range_limit(client, create_company):
    company = create_company()
    assert client.get(f"/api/stripe/history/{company.id}", params={"limit": 0}).status_code == 422
    assert client.get(f"/api/stripe/history/{company.id}", params={"limit": 101}).status_code == 422


def test_get_transaction(client, create_company, create_transaction):
    company = create_company()
    tx = create_transaction(company.id, payment_metadata={"orderId": "A1"})

    response = client.get(f"/api/stripe/transactions/{tx.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == tx.id
    assert body["metadata"] == {"orderId": "A1"}
    assert body["status"] == "pending"


def test_get_transaction_not_found(client):
    response = client.get("/api/stripe/transactions/missing")

    assert response.status_code == 404
    assert response.json() == {"detail": "Payment transaction not found."}


# ------------------------------------------------------------
# Internal status
# ------------------------------------------------------------
def test_update_internal_status_merges_notes(client, create_company, create_transaction, load):
    company = create_company()
    tx = create_transaction(company.id, status="succeeded", payment_metadata={"orderId": "A1"})

    response = client.put(
        f"/api/stripe/transactions/{tx.id}/status",
        json={"internal_status": "approved", "notes": "checked by ops"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["transaction"]["internal_status"] == "approved"
    assert body["transaction"]["status"] == "succeeded"
    stored = load(PaymentTransaction, tx.id)
    assert stored.payment_metadata == {"orderId": "A1", "internalNotes": "checked by ops"}


def test_update_internal_status_rejects_unknown_value_before_lookup(client, create_company, create_transaction, mocker, load):
    company = create_company()
    tx = create_transaction(company.id)
    lookup = mocker.patch.object(TransactionStore, "get")

    response = client.put(f"/api/stripe/transactions/{tx.id}/status", json={"internal_status": "bogus"})

    assert response.status_code == 400
    assert "Must be one of" in response.json()["detail"]
    lookup.assert_not_called()
    assert load(PaymentTransaction, tx.id).internal_status == "awaiting_approval"


def test_update_internal_status_rejects_reconciliation_only_value(client, create_company, create_transaction):
    company = create_company()
    tx = create_transaction(company.id)

    response = client.put(f"/api/stripe/transactions/{tx.id}/status", json={"internal_status": "canceled_by_user"})

    assert response.status_code == 400


def test_update_internal_status_unknown_transaction(client):
    response = client.put("/api/stripe/transactions/missing/status", json={"internal_status": "approved"})

    assert response.status_code == 404


def test_cancel_subscription_with_stripe_subscription_object(session, create_company, create_transaction, load, mocker):
    company = create_company()
    tx = create_transaction(company.id, stripe_payment_intent_id="pi_sub", stripe_subscription_id="sub_1")
    canceled = stripe.Subscription.construct_from(
        make_subscription(status="canceled"), "sk_test_gateway"
    )
    mocker.patch("stripe.Subscription.cancel", return_value=canceled)
    service = PaymentService(session, StripeGateway(api_key="sk_test_gateway"))

    result = service.cancel_subscription("sub_1")

    assert result == {"subscription_id": "sub_1", "status": "canceled", "transaction_id": tx.id}
    stored = load(PaymentTransaction, tx.id)
    assert stored.status == "canceled"
    assert stored.internal_status == "canceled_by_user"
