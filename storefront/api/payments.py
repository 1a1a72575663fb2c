
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Optional
from storefront.core.auth import get_current_identity
from storefront.services.payments import create_payment_intent, PaymentGatewayError

router = APIRouter()

class CreateIntent(BaseModel):
    amount: int = Field(gt=0)  # minor units
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)

class IntentResponse(BaseModel):
    payment_intent_id: str
    client_secret: str
    amount: int
    currency: str

@router.post("/v1/payments/create-intent", response_model=IntentResponse)
def create_intent(payload: CreateIntent, identity: dict = Depends(get_current_identity)):
    try:
        return create_payment_intent(payload.amount, payload.currency)
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))
