from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import select
from typing import List
from storefront.api.deps import get_db
from storefront.db.models import Product

router = APIRouter()

@router.get('/', response_model=List[str])
def list_categories(db: Session = Depends(get_db)):
    stmt = select(Product.category).distinct().order_by(Product.category)
    return list(db.execute(stmt).scalars().all())
