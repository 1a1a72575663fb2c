from storefront.client.api import StorefrontAPI, StorefrontAPIError
from storefront.client.cart import CartItem, CartStore, LocalStorage
from storefront.client.checkout import (
    AddressIncompleteError,
    CardMissingError,
    CheckoutError,
    CheckoutOrchestrator,
    CheckoutResult,
    EmptyCartError,
    PaymentCapturedOrderNotRecorded,
    PaymentDeclinedError,
    PaymentInitError,
    PaymentNotSucceededError,
    to_minor_units,
)
from storefront.client.payments import CardInput, PaymentConfirmation, PaymentIntent, StripeCardConfirmer
from storefront.client.session import ShopperSession

__all__ = [
    "StorefrontAPI",
    "StorefrontAPIError",
    "CartItem",
    "CartStore",
    "LocalStorage",
    "AddressIncompleteError",
    "CardMissingError",
    "CheckoutError",
    "CheckoutOrchestrator",
    "CheckoutResult",
    "EmptyCartError",
    "PaymentCapturedOrderNotRecorded",
    "PaymentDeclinedError",
    "PaymentInitError",
    "PaymentNotSucceededError",
    "to_minor_units",
    "CardInput",
    "PaymentConfirmation",
    "PaymentIntent",
    "StripeCardConfirmer",
    "ShopperSession",
]
