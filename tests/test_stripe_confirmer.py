import pytest
import stripe

from storefront.client.payments import (
    CardInput,
    PaymentGatewayError,
    PaymentIntent,
    StripeCardConfirmer,
    intent_id_from_secret,
)

INTENT = PaymentIntent(payment_intent_id="pi_9", client_secret="pi_9_secret_abc", amount=4999, currency="usd")
CARD = CardInput(payment_method="pm_card_visa")


def test_confirm_uses_publishable_key_and_client_secret(monkeypatch):
    calls = []

    def fake_confirm(intent_id, **kwargs):
        calls.append((intent_id, kwargs))
        return {"id": intent_id, "status": "succeeded"}

    monkeypatch.setattr(stripe.PaymentIntent, "confirm", fake_confirm)
    result = StripeCardConfirmer("pk_test_1").confirm(INTENT, CARD, receipt_email="cust@example.com")

    assert result.succeeded
    assert calls == [("pi_9", {
        "api_key": "pk_test_1",
        "client_secret": "pi_9_secret_abc",
        "payment_method": "pm_card_visa",
        "receipt_email": "cust@example.com",
    })]


def test_non_succeeded_status_is_reported(monkeypatch):
    monkeypatch.setattr(stripe.PaymentIntent, "confirm",
                        lambda intent_id, **kw: {"id": intent_id, "status": "requires_action"})
    result = StripeCardConfirmer("pk").confirm(INTENT, CARD)
    assert result.status == "requires_action"
    assert not result.succeeded


def test_card_error_becomes_gateway_error(monkeypatch):
    def declined(intent_id, **kwargs):
        raise stripe.CardError("Your card was declined.", param=None, code="card_declined")

    monkeypatch.setattr(stripe.PaymentIntent, "confirm", declined)
    with pytest.raises(PaymentGatewayError) as exc:
        StripeCardConfirmer("pk").confirm(INTENT, CARD)
    assert exc.value.message == "Your card was declined."


def test_intent_id_from_secret():
    assert intent_id_from_secret("pi_3Abc_secret_XyZ") == "pi_3Abc"
