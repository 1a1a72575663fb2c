from decimal import Decimal
from typing import List
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.auth import STAFF_ROLES
from storefront.core.logging import get_logger
from storefront.db.models import Order, OrderItem
from storefront.kafka import producer
from storefront.schemas import OrderCreate, OrderRead, OrderStatus, ShippingAddress, OrderItemRead, PaymentInfoRead

logger = get_logger(__name__)


class OrderNotFound(LookupError):
    pass


class NotAuthorized(PermissionError):
    pass


class PaymentAlreadyRecorded(Exception):
    """The payment reference belongs to an order placed by someone else."""


def compute_total(items) -> Decimal:
    return sum((Decimal(i.price) * i.quantity for i in items), Decimal("0.00"))


def to_read(order: Order) -> OrderRead:
    return OrderRead(
        id=order.id,
        user_email=order.user_email,
        items=[
            OrderItemRead(product_id=it.product_id, quantity=it.quantity, unit_price=it.unit_price)
            for it in order.items
        ],
        shipping_address=ShippingAddress(
            street=order.street,
            city=order.city,
            state=order.state,
            zip_code=order.zip_code,
            country=order.country,
        ),
        total_price=order.total_price,
        status=OrderStatus(order.status),
        payment_info=PaymentInfoRead(
            method=order.payment_method,
            external_reference=order.payment_reference,
            external_status=order.payment_status,
        ),
        created_at=order.created_at,
    )


def find_by_payment_reference(db: Session, reference: str | None) -> Order | None:
    if not reference:
        return None
    return db.execute(select(Order).where(Order.payment_reference == reference)).scalar_one_or_none()


def _replayed(existing: Order, user_email: str, reference: str) -> Order:
    if existing.user_email != user_email:
        logger.warning("Payment %s reused by %s; it belongs to order %s", reference, user_email, existing.id)
        raise PaymentAlreadyRecorded("Payment already recorded for another order")
    logger.info("Order %s already recorded for payment %s", existing.id, reference)
    return existing


def create_order(db: Session, payload: OrderCreate, user_email: str) -> tuple[Order, bool]:
    """
    Persist an order for an already confirmed payment.

    Returns ``(order, created)``. A second submission by the same user carrying
    the same payment reference returns the stored order with ``created=False``
    so that a client retry after a lost response never records the charge
    twice. The same reference from another user raises
    :class:`PaymentAlreadyRecorded`.
    """
    info = payload.payment_info
    reference = info.id if info else None

    existing = find_by_payment_reference(db, reference)
    if existing:
        return _replayed(existing, user_email, reference), False

    addr = payload.shipping_address
    order = Order(
        user_email=user_email,
        status=OrderStatus.PENDING.value,
        total_price=compute_total(payload.items),
        street=addr.street,
        city=addr.city,
        state=addr.state,
        zip_code=addr.zip_code,
        country=addr.country,
        payment_method=payload.payment_method,
        payment_reference=reference,
        payment_status=info.status if info else None,
    )
    for it in payload.items:
        order.items.append(OrderItem(product_id=it.product_id, quantity=it.quantity, unit_price=it.price))

    db.add(order)
    try:
        db.commit()
    except IntegrityError:
        # concurrent submission for the same payment won the insert
        db.rollback()
        existing = find_by_payment_reference(db, reference)
        if existing is None:
            raise
        return _replayed(existing, user_email, reference), False
    db.refresh(order)
    logger.info("Order %s created for %s, total %s", order.id, user_email, order.total_price)

    producer.emit_order_event({
        "type": "order.created",
        "order_id": order.id,
        "user_email": user_email,
        "total_price": str(order.total_price),
        "payment_reference": reference,
        "items": [
            {"product_id": it.product_id, "quantity": it.quantity, "unit_price": str(it.unit_price)}
            for it in order.items
        ],
    })
    return order, True


def get_order(db: Session, order_id: int, identity: dict) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise OrderNotFound("Order not found")
    if order.user_email != identity.get("sub") and identity.get("role") not in STAFF_ROLES:
        raise NotAuthorized("Not authorized")
    return order


def list_orders(db: Session, user_email: str | None = None) -> List[Order]:
    stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if user_email is not None:
        stmt = stmt.where(Order.user_email == user_email)
    return list(db.execute(stmt).scalars().all())


def update_order_status(db: Session, order_id: int, status: OrderStatus, identity: dict) -> Order:
    # No transition check: any status may follow any other.
    order = db.get(Order, order_id)
    if not order:
        raise OrderNotFound("Order not found")
    if identity.get("role") not in STAFF_ROLES:
        raise NotAuthorized("Not authorized")

    previous = order.status
    order.status = status.value
    db.add(order); db.commit(); db.refresh(order)
    logger.info("Order %s status %s -> %s by %s", order.id, previous, order.status, identity.get("sub"))

    producer.emit_order_event({
        "type": "order.status_changed",
        "order_id": order.id,
        "user_email": order.user_email,
        "previous_status": previous,
        "status": order.status,
    })
    return order
