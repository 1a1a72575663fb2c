from fastapi import APIRouter, Depends, HTTPException, Query, Response
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select
from storefront.api.deps import get_db
from storefront.core.auth import get_current_identity, require_roles, STAFF_ROLES
from storefront.core.logging import get_logger
from storefront.db import models
from storefront.schemas import ProductCreate, ProductRead, RatingCreate, RatingRead

logger = get_logger(__name__)

router = APIRouter()

def _newest_first(stmt):
    return stmt.order_by(models.Product.created_at.desc(), models.Product.id.desc())

@router.get('/', response_model=List[ProductRead])
def list_products(db: Session = Depends(get_db), q: Optional[str] = None, category: Optional[str] = None, limit: int = 50, offset: int = 0):
    stmt = select(models.Product)
    if q:
        stmt = stmt.where(models.Product.name.ilike(f"%{q.lower()}%"))
    if category: stmt = stmt.where(models.Product.category == category)
    stmt = _newest_first(stmt).offset(offset).limit(limit)
    return db.execute(stmt).scalars().unique().all()

@router.get('/featured', response_model=List[ProductRead])
def featured_products(db: Session = Depends(get_db), limit: int = Query(default=8, ge=1, le=50)):
    # home page listing: newest products that can still be bought
    stmt = _newest_first(select(models.Product).where(models.Product.stock > 0)).limit(limit)
    return db.execute(stmt).scalars().unique().all()

@router.get('/{product_id}', response_model=ProductRead)
def get_product(product_id: int, db: Session = Depends(get_db)):
    obj = db.get(models.Product, product_id)
    if not obj: raise HTTPException(status_code=404, detail='Product not found')
    return obj

@router.post('/', response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db), identity: dict = Depends(require_roles(*STAFF_ROLES))):
    data = payload.model_dump(exclude={'images'})
    obj = models.Product(**data, seller_email=identity.get('sub'))
    obj.images = [models.ProductImage(url=u) for u in payload.images]
    db.add(obj); db.commit(); db.refresh(obj)
    return obj

# --- ratings ---
@router.get('/{product_id}/ratings', response_model=List[RatingRead])
def list_ratings(product_id: int, db: Session = Depends(get_db)):
    obj = db.get(models.Product, product_id)
    if not obj: raise HTTPException(status_code=404, detail='Product not found')
    return sorted(obj.ratings, key=lambda r: r.id)

@router.post('/{product_id}/ratings', response_model=RatingRead, status_code=201)
def rate_product(product_id: int, payload: RatingCreate, response: Response,
                 db: Session = Depends(get_db), identity: dict = Depends(get_current_identity)):
    """One rating per user and product; rating again replaces the earlier one."""
    if not db.get(models.Product, product_id):
        raise HTTPException(status_code=404, detail='Product not found')
    email = identity.get('sub')
    stmt = select(models.ProductRating).where(
        models.ProductRating.product_id == product_id,
        models.ProductRating.user_email == email,
    )
    obj = db.execute(stmt).scalar_one_or_none()
    if obj:
        obj.rating, obj.comment = payload.rating, payload.comment
        response.status_code = 200
    else:
        obj = models.ProductRating(product_id=product_id, user_email=email, **payload.model_dump())
        db.add(obj)
    db.commit(); db.refresh(obj)
    logger.info("Product %s rated %s by %s", product_id, obj.rating, email)
    return obj
