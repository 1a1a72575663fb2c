
from pydantic import BaseModel
import os

class ClientSettings(BaseModel):
    STOREFRONT_API_BASE: str = os.getenv("STOREFRONT_API_BASE", "http://localhost:8000")
    STRIPE_PUBLISHABLE_KEY: str = os.getenv("STRIPE_PUBLISHABLE_KEY", "")
    CART_STORAGE_PATH: str = os.getenv("CART_STORAGE_PATH", os.path.expanduser("~/.storefront/storage.json"))
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "5.0"))

client_settings = ClientSettings()
