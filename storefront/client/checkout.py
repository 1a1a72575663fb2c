"""
Checkout orchestration.

The steps run strictly in sequence:

1. ``prepare()`` sizes a PaymentIntent to the cart total in minor units.
2. ``submit()`` validates the shipping address locally, before any gateway call.
3. The charge is confirmed with the payment gateway.
4. The order is recorded with the storefront API.
5. The cart is cleared and the confirmation view is addressed by order id.

Once step 3 has succeeded, money has moved. A failure in step 4 is therefore
reported as :class:`PaymentCapturedOrderNotRecorded` and never as a generic
error. The charge needs manual reconciliation and must not be retried from the
client.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from pydantic import ValidationError

from storefront.client.api import StorefrontAPI, StorefrontAPIError
from storefront.client.cart import CartStore
from storefront.client.payments import (
    CardInput,
    PaymentConfirmer,
    PaymentGatewayError,
    PaymentIntent,
)
from storefront.core.logging import get_logger
from storefront.schemas import ShippingAddress

logger = get_logger(__name__)

PAYMENT_METHOD = "stripe"


class CheckoutError(Exception):
    message = "Checkout failed"

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class EmptyCartError(CheckoutError):
    message = "Your cart is empty"


class AddressIncompleteError(CheckoutError):
    message = "Please fill in all shipping address fields"


class CardMissingError(CheckoutError):
    message = "Card information is required"


class PaymentInitError(CheckoutError):
    message = "Failed to initialize payment. Please try again."


class PaymentDeclinedError(CheckoutError):
    message = "Payment failed"


class PaymentNotSucceededError(CheckoutError):
    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Payment was not completed (status: {status})")


class PaymentCapturedOrderNotRecorded(CheckoutError):
    message = "Payment succeeded but failed to create order. Please contact support."

    def __init__(self, payment_intent_id: str, cause: str):
        self.payment_intent_id = payment_intent_id
        self.cause = cause
        super().__init__()


@dataclass
class CheckoutResult:
    order_id: int
    order: Dict[str, Any]

    @property
    def confirmation_path(self) -> str:
        return f"/orders/{self.order_id}"


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_address(address: Dict[str, Any] | ShippingAddress) -> ShippingAddress:
    if isinstance(address, ShippingAddress):
        return address
    try:
        return ShippingAddress.model_validate(address)
    except ValidationError as e:
        raise AddressIncompleteError() from e


class CheckoutOrchestrator:
    def __init__(self, cart: CartStore, api: StorefrontAPI, confirmer: PaymentConfirmer,
                 user_email: Optional[str] = None):
        self.cart = cart
        self.api = api
        self.confirmer = confirmer
        self.user_email = user_email
        self.intent: Optional[PaymentIntent] = None

    def prepare(self) -> PaymentIntent:
        if self.cart.is_empty():
            raise EmptyCartError()
        amount = to_minor_units(self.cart.total_price)
        try:
            self.intent = self.api.create_payment_intent(amount)
        except StorefrontAPIError as e:
            logger.error("Payment intent request for %s failed: %s", amount, e.message)
            raise PaymentInitError() from e
        logger.info("Payment intent %s ready for %s", self.intent.payment_intent_id, amount)
        return self.intent

    def submit(self, address: Dict[str, Any] | ShippingAddress, card: Optional[CardInput]) -> CheckoutResult:
        shipping = validate_address(address)
        if card is None:
            raise CardMissingError()
        if self.cart.is_empty():
            raise EmptyCartError()

        if self.intent is None or self.intent.amount != to_minor_units(self.cart.total_price):
            self.prepare()
        intent = self.intent

        try:
            confirmation = self.confirmer.confirm(intent, card, receipt_email=self.user_email)
        except PaymentGatewayError as e:
            raise PaymentDeclinedError(e.message or None) from e
        if not confirmation.succeeded:
            raise PaymentNotSucceededError(confirmation.status)

        # money has moved; the intent must not be confirmed again
        self.intent = None
        items = [
            {"product_id": i.product_id, "quantity": i.quantity, "price": str(i.unit_price)}
            for i in self.cart.items
        ]
        try:
            order = self.api.create_order(
                items=items,
                shipping_address=shipping.model_dump(),
                payment_method=PAYMENT_METHOD,
                payment_info={"id": confirmation.id, "status": confirmation.status},
            )
            order_id = int(order["id"])
        except Exception as e:
            logger.error("Payment %s captured but order was not recorded: %s", confirmation.id, e)
            raise PaymentCapturedOrderNotRecorded(confirmation.id, str(e)) from e

        try:
            self.cart.clear_cart()
        except OSError as e:
            logger.warning("Order %s recorded but cart storage could not be cleared: %s", order_id, e)
        logger.info("Checkout complete: order %s for payment %s", order_id, confirmation.id)
        return CheckoutResult(order_id=order_id, order=order)
