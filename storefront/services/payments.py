import stripe
from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)


class PaymentGatewayError(Exception):
    pass


def create_payment_intent(amount: int, currency: str | None = None) -> dict:
    """Create a Stripe PaymentIntent for ``amount`` minor units (cents)."""
    currency = (currency or settings.PAYMENT_CURRENCY).lower()
    try:
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency=currency,
            api_key=settings.STRIPE_SECRET_KEY,
        )
    except stripe.StripeError as e:
        logger.error("PaymentIntent create failed for %s %s: %s", amount, currency, e)
        raise PaymentGatewayError(e.user_message or str(e)) from e
    logger.info("PaymentIntent %s created for %s %s", intent["id"], amount, currency)
    return {
        "payment_intent_id": intent["id"],
        "client_secret": intent["client_secret"],
        "amount": intent["amount"],
        "currency": intent["currency"],
    }
