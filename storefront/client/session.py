from pathlib import Path
from typing import Optional

import jwt

from storefront.client.api import StorefrontAPI
from storefront.client.cart import CartStore, LocalStorage
from storefront.client.checkout import CheckoutOrchestrator
from storefront.client.config import client_settings
from storefront.client.payments import PaymentConfirmer, StripeCardConfirmer
from storefront.core.logging import get_logger

logger = get_logger(__name__)


def _read_claims(token: Optional[str]) -> dict:
    # signature is checked by the server; the client only reads sub and role
    if not token:
        return {}
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        logger.warning("Ignoring unreadable session token: %s", e)
        return {}


class ShopperSession:
    """
    Everything one shopper needs for a visit: the cart, the API client bound to
    their bearer token, and the payment confirmer. Built explicitly and passed to
    whatever needs it; the cart is rehydrated from storage on construction.
    """

    def __init__(self, cart: CartStore, api: StorefrontAPI, confirmer: PaymentConfirmer,
                 token: Optional[str] = None):
        self.cart = cart
        self.api = api
        self.confirmer = confirmer
        self.token = token
        self.claims = _read_claims(token)

    @classmethod
    def open(cls, token: Optional[str] = None, storage_path: Optional[str | Path] = None,
             base_url: Optional[str] = None, confirmer: Optional[PaymentConfirmer] = None) -> "ShopperSession":
        storage = LocalStorage(storage_path or client_settings.CART_STORAGE_PATH)
        return cls(
            cart=CartStore(storage),
            api=StorefrontAPI(base_url=base_url, token=token),
            confirmer=confirmer or StripeCardConfirmer(),
            token=token,
        )

    @property
    def user_email(self) -> Optional[str]:
        return self.claims.get("sub")

    @property
    def role(self) -> Optional[str]:
        return self.claims.get("role")

    def checkout(self) -> CheckoutOrchestrator:
        return CheckoutOrchestrator(self.cart, self.api, self.confirmer, user_email=self.user_email)

    def close(self):
        self.api.close()
