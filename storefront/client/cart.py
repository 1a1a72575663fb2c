"""
Shopper-side cart.

The cart lives in memory and is mirrored to a :class:`LocalStorage` file on
every mutation, the way a browser storefront keeps it in ``localStorage``.
Totals are derived from the current items on each read and are never stored.
"""
import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from storefront.core.logging import get_logger

logger = get_logger(__name__)

CART_KEY = "cart"


class CartItem(BaseModel):
    product_id: int
    name: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    image_ref: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_product(cls, product: Dict[str, Any], quantity: int = 1) -> "CartItem":
        images = product.get("images") or []
        return cls(
            product_id=product["id"],
            name=product["name"],
            unit_price=Decimal(str(product["price"])),
            quantity=quantity,
            image_ref=images[0] if images else "",
        )


class LocalStorage:
    """JSON-file key/value store."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable storage %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Optional[Any]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, default=str), encoding="utf-8")
        tmp.replace(self.path)


class CartStore:
    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self._items: List[CartItem] = []
        self._load()

    def _load(self):
        raw = self.storage.get_item(CART_KEY) or []
        items: List[CartItem] = []
        for entry in raw if isinstance(raw, list) else []:
            try:
                items.append(CartItem.model_validate(entry))
            except ValidationError as e:
                logger.warning("Dropping invalid cart entry %r: %s", entry, e)
        self._items = items
        logger.debug("Cart rehydrated with %d items", len(items))

    def _save(self):
        self.storage.set_item(CART_KEY, [i.model_dump(mode="json") for i in self._items])

    # --- reads ---
    @property
    def items(self) -> List[CartItem]:
        return [i.model_copy() for i in self._items]

    @property
    def total_items(self) -> int:
        return sum(i.quantity for i in self._items)

    @property
    def total_price(self) -> Decimal:
        return sum((i.line_total for i in self._items), Decimal("0.00"))

    def is_empty(self) -> bool:
        return not self._items

    # --- mutations ---
    def add_item(self, item: CartItem) -> None:
        for idx, existing in enumerate(self._items):
            if existing.product_id == item.product_id:
                self._items[idx] = existing.model_copy(update={"quantity": existing.quantity + item.quantity})
                break
        else:
            self._items.append(item.model_copy())
        self._save()

    def update_quantity(self, product_id: int, quantity: int) -> None:
        """Set the quantity of a line. 0 removes it; unknown ids are ignored."""
        if quantity < 0:
            raise ValueError("Quantity cannot be negative")
        if quantity == 0:
            self.remove_item(product_id)
            return
        self._items = [
            i.model_copy(update={"quantity": quantity}) if i.product_id == product_id else i
            for i in self._items
        ]
        self._save()

    def remove_item(self, product_id: int) -> None:
        self._items = [i for i in self._items if i.product_id != product_id]
        self._save()

    def clear_cart(self) -> None:
        self._items = []
        self._save()
