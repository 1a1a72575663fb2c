"""
Payment confirmation step.

The storefront API hands out a PaymentIntent's client secret. The shopper side
confirms the charge directly with Stripe using the publishable key, so card
details never pass through the storefront backend.
"""
from typing import Optional, Protocol

import stripe
from pydantic import BaseModel

from storefront.client.config import client_settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)

SUCCEEDED = "succeeded"


class PaymentIntent(BaseModel):
    payment_intent_id: str
    client_secret: str
    amount: int
    currency: str


class CardInput(BaseModel):
    """A tokenized card, e.g. a Stripe PaymentMethod id such as ``pm_card_visa``."""
    payment_method: str
    cardholder_name: Optional[str] = None


class PaymentConfirmation(BaseModel):
    id: str
    status: str

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


class PaymentGatewayError(Exception):
    """The gateway refused the confirmation (declined card, network error...)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PaymentConfirmer(Protocol):
    def confirm(self, intent: PaymentIntent, card: CardInput,
                receipt_email: Optional[str] = None) -> PaymentConfirmation: ...


def intent_id_from_secret(client_secret: str) -> str:
    # client secrets look like "pi_123_secret_abc"
    return client_secret.split("_secret_", 1)[0]


class StripeCardConfirmer:
    def __init__(self, publishable_key: Optional[str] = None):
        self.publishable_key = publishable_key or client_settings.STRIPE_PUBLISHABLE_KEY

    def confirm(self, intent: PaymentIntent, card: CardInput,
                receipt_email: Optional[str] = None) -> PaymentConfirmation:
        params = {
            "client_secret": intent.client_secret,
            "payment_method": card.payment_method,
        }
        if receipt_email:
            params["receipt_email"] = receipt_email
        try:
            result = stripe.PaymentIntent.confirm(
                intent.payment_intent_id or intent_id_from_secret(intent.client_secret),
                api_key=self.publishable_key,
                **params,
            )
        except stripe.StripeError as e:
            message = e.user_message or str(e) or "Payment failed"
            logger.warning("Payment confirmation rejected for %s: %s", intent.payment_intent_id, message)
            raise PaymentGatewayError(message) from e
        logger.info("Payment %s confirmed with status %s", result["id"], result["status"])
        return PaymentConfirmation(id=result["id"], status=result["status"])
