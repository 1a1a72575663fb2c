from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.api.deps import get_db
from storefront.core.auth import get_current_identity, require_roles, STAFF_ROLES
from storefront.core.logging import get_logger
from storefront.schemas import OrderCreate, OrderEnvelope, OrderList, StatusUpdate
from storefront.services import orders as order_service
from storefront.services.orders import OrderNotFound, NotAuthorized, PaymentAlreadyRecorded

logger = get_logger(__name__)

ORDER_FAILED = "Failed to create order"

router = APIRouter()

@router.post("/v1/orders", response_model=OrderEnvelope, status_code=201)
def create_order(payload: OrderCreate, response: Response,
                 identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    try:
        order, created = order_service.create_order(db, payload, identity.get("sub"))
    except PaymentAlreadyRecorded as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Order persistence failed for %s: %s", identity.get("sub"), e)
        return JSONResponse(status_code=500, content={"message": ORDER_FAILED, "detail": ORDER_FAILED})
    if not created:
        response.status_code = 200
    return {"order": order_service.to_read(order)}

@router.get("/v1/orders", response_model=OrderList)
def my_orders(identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    rows = order_service.list_orders(db, user_email=identity.get("sub"))
    return {"orders": [order_service.to_read(o) for o in rows]}

@router.get("/v1/orders/{order_id}", response_model=OrderEnvelope)
def get_order(order_id: int, identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    try:
        order = order_service.get_order(db, order_id, identity)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAuthorized as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"order": order_service.to_read(order)}

# --- admin ---
@router.get("/v1/admin/orders", response_model=OrderList)
def all_orders(identity: dict = Depends(require_roles(*STAFF_ROLES)), db: Session = Depends(get_db)):
    return {"orders": [order_service.to_read(o) for o in order_service.list_orders(db)]}

@router.patch("/v1/admin/orders/{order_id}", response_model=OrderEnvelope)
def update_status(order_id: int, payload: StatusUpdate,
                  identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    try:
        order = order_service.update_order_status(db, order_id, payload.status, identity)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAuthorized as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"order": order_service.to_read(order)}
