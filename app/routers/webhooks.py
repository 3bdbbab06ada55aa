"""
Buyer sync webhook.

The storefront posts {name, email, product_title[, ref_id, amount]} after a
purchase. The product title decides the access tier; the buyer is upserted by
email. Every call that passes authentication leaves an Event row.
"""
import hmac
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.exceptions import ValidationError
from app.models.event import Event, EventStatus
from app.schemas.buyers import BuyerResponse
from app.schemas.webhooks import BuyerSyncPayload, BuyerSyncResponse
from app.services.buyers import ingest_buyer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

SECRET_HEADER = "X-Webhook-Secret"
EVENT_TYPE = "buyer.sync"


def validate_webhook_secret(header_value: Optional[str], expected_secret: str) -> bool:
    """Shared-secret check; an unconfigured secret rejects everything"""
    if not header_value or not expected_secret:
        return False
    return hmac.compare_digest(header_value, expected_secret)


def _record_event(db: Session, payload: dict, event_status: EventStatus, error: Optional[str] = None) -> Event:
    event = Event(type=EVENT_TYPE, payload=payload, status=event_status, error_message=error)
    db.add(event)
    db.commit()
    return event


@router.post("/buyer-sync", response_model=BuyerSyncResponse)
async def buyer_sync(request: Request, db: Session = Depends(get_db)):
    if not validate_webhook_secret(request.headers.get(SECRET_HEADER), settings.buyer_sync_webhook_secret):
        logger.warning("Rejected buyer-sync webhook: bad or missing secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        raw = await request.json()
        payload = BuyerSyncPayload.model_validate(raw)
    except (ValueError, PydanticValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")

    if not payload.name or not payload.email or not payload.product_title:
        _record_event(db, raw, EventStatus.IGNORED, "Missing required fields")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: name, email, product_title",
        )

    try:
        buyer = ingest_buyer(
            db,
            name=payload.name,
            email=payload.email,
            product_title=payload.product_title,
            ref_id=payload.ref_id,
            amount=payload.amount,
        )
    except ValidationError as e:
        db.rollback()
        _record_event(db, raw, EventStatus.FAILED, e.message)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    _record_event(db, {**raw, "access_type": buyer.access_type.value}, EventStatus.PROCESSED)
    logger.info("Buyer sync processed for %s", buyer.email)

    return BuyerSyncResponse(success=True, buyer=BuyerResponse.model_validate(buyer))
