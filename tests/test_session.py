from decimal import Decimal

from storefront.client.cart import CartItem, CartStore, LocalStorage
from storefront.client.session import ShopperSession
from conftest import bearer


class NullConfirmer:
    def confirm(self, intent, card, receipt_email=None):
        raise AssertionError("not expected")


def test_open_rehydrates_cart_and_reads_claims(tmp_path):
    path = tmp_path / "storage.json"
    CartStore(LocalStorage(path)).add_item(
        CartItem(product_id=4, name="Lamp", unit_price=Decimal("12.00"), quantity=2)
    )
    token = bearer("cust@example.com", "customer")["Authorization"].split(" ", 1)[1]

    session = ShopperSession.open(token=token, storage_path=path, base_url="http://shop.test",
                                  confirmer=NullConfirmer())
    try:
        assert session.cart.total_items == 2
        assert session.user_email == "cust@example.com"
        assert session.role == "customer"
        assert session.api.client.headers["Authorization"] == f"Bearer {token}"

        flow = session.checkout()
        assert flow.user_email == "cust@example.com"
        assert flow.cart is session.cart
    finally:
        session.close()


def test_unreadable_token_leaves_session_anonymous(tmp_path):
    session = ShopperSession.open(token="not-a-jwt", storage_path=tmp_path / "s.json",
                                  base_url="http://shop.test", confirmer=NullConfirmer())
    assert session.claims == {}
    assert session.user_email is None
    assert session.checkout().user_email is None
    session.close()


def test_anonymous_session(tmp_path):
    session = ShopperSession.open(storage_path=tmp_path / "s.json", base_url="http://shop.test",
                                  confirmer=NullConfirmer())
    assert session.user_email is None
    assert session.cart.is_empty()
    assert "Authorization" not in session.api.client.headers
    session.close()
