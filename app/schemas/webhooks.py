from pydantic import BaseModel
from typing import Optional

from app.schemas.buyers import BuyerResponse


class BuyerSyncPayload(BaseModel):
    """
    Purchase notification from the storefront.

    Fields are optional here so missing ones produce a 400 with a readable
    message instead of a 422.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    product_title: Optional[str] = None
    ref_id: Optional[str] = None
    amount: Optional[str] = None

    class Config:
        extra = "allow"


class BuyerSyncResponse(BaseModel):
    success: bool = True
    buyer: BuyerResponse
