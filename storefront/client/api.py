from typing import Any, Dict, List, Optional

import httpx

from storefront.client.config import client_settings
from storefront.client.payments import PaymentIntent
from storefront.core.logging import get_logger

logger = get_logger(__name__)


class StorefrontAPIError(Exception):
    """Non-2xx answer from the storefront API, or no answer at all (status_code None)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StorefrontAPI:
    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.BaseTransport] = None,
                 client: Optional[httpx.Client] = None):
        if client is None:
            client = httpx.Client(
                base_url=(base_url or client_settings.STOREFRONT_API_BASE).rstrip("/"),
                timeout=timeout if timeout is not None else client_settings.REQUEST_TIMEOUT,
                transport=transport,
            )
        if token:
            client.headers["Authorization"] = f"Bearer {token}"
        self.client = client

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        logger.debug("%s %s", method, path)
        try:
            resp = self.client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise StorefrontAPIError(f"Storefront unavailable: {e}") from e
        try:
            data = resp.json()
        except ValueError:
            data = None
        if resp.status_code >= 400:
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("detail")
            if not isinstance(message, str):
                message = resp.text or resp.reason_phrase
            raise StorefrontAPIError(message, status_code=resp.status_code)
        return data

    # --- catalog ---
    def list_products(self, q: Optional[str] = None, category: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {k: v for k, v in {"q": q, "category": category}.items() if v}
        return self._request("GET", "/catalog/v1/products/", params=params)

    def get_product(self, product_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/catalog/v1/products/{product_id}")

    def featured_products(self, limit: int = 8) -> List[Dict[str, Any]]:
        return self._request("GET", "/catalog/v1/products/featured", params={"limit": limit})

    def rate_product(self, product_id: int, rating: int, comment: str = "") -> Dict[str, Any]:
        return self._request("POST", f"/catalog/v1/products/{product_id}/ratings",
                             json={"rating": rating, "comment": comment})

    def list_categories(self) -> List[str]:
        return self._request("GET", "/catalog/v1/categories/")

    # --- payments ---
    def create_payment_intent(self, amount: int, currency: Optional[str] = None) -> PaymentIntent:
        body: Dict[str, Any] = {"amount": amount}
        if currency:
            body["currency"] = currency
        return PaymentIntent.model_validate(self._request("POST", "/payment/v1/payments/create-intent", json=body))

    # --- orders ---
    def create_order(self, items: List[Dict[str, Any]], shipping_address: Dict[str, str],
                     payment_method: str, payment_info: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("POST", "/order/v1/orders", json={
            "items": items,
            "shipping_address": shipping_address,
            "payment_method": payment_method,
            "payment_info": payment_info,
        })
        return data["order"]

    def get_order(self, order_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/order/v1/orders/{order_id}")["order"]

    def list_my_orders(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/order/v1/orders")["orders"]

    def list_all_orders(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/order/v1/admin/orders")["orders"]

    def update_order_status(self, order_id: int, status: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/order/v1/admin/orders/{order_id}", json={"status": status})["order"]
