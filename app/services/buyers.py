"""
Buyer store: email normalization, lookup, and webhook ingestion (upsert by email).
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.database import SessionLocal
from app.exceptions import ValidationError
from app.models.buyer import Buyer, AccessType
from app.services.access import classify_product, parse_access_type

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class BuyerRecord:
    """Detached snapshot of a buyer row, safe to keep after the DB session closes"""
    email: str
    name: str
    access_type: AccessType
    product_title: str = ""


def normalize_email(email: str) -> str:
    """Trim and lowercase; every lookup and write goes through this."""
    return (email or "").strip().lower()


def validate_email(email: str) -> str:
    """Normalize and check the shape of an email, raising ValidationError"""
    normalized = normalize_email(email)
    if not normalized or not EMAIL_RE.match(normalized):
        raise ValidationError("Invalid email format")
    return normalized


def get_buyer_by_email(db: Session, email: str) -> Optional[Buyer]:
    return db.query(Buyer).filter(Buyer.email == normalize_email(email)).first()


def to_record(buyer: Buyer) -> BuyerRecord:
    return BuyerRecord(
        email=buyer.email,
        name=buyer.name,
        access_type=parse_access_type(buyer.access_type),
        product_title=buyer.product_title or "",
    )


def _lookup_buyer(email: str) -> Optional[BuyerRecord]:
    db = SessionLocal()
    try:
        buyer = get_buyer_by_email(db, email)
        return to_record(buyer) if buyer else None
    finally:
        db.close()


async def lookup_buyer_by_email(email: str) -> Optional[BuyerRecord]:
    """
    Lookup collaborator for member sessions.

    Opens its own DB session so the caller may outlive the request that created
    it, and runs the query in the threadpool. Database errors propagate; the
    session store treats them as transient.
    """
    return await run_in_threadpool(_lookup_buyer, email)


def ingest_buyer(
    db: Session,
    *,
    name: str,
    email: str,
    product_title: str,
    ref_id: Optional[str] = None,
    amount: Optional[str] = None,
) -> Buyer:
    """
    Webhook ingestion: classify the product, then insert or update by email.

    purchased_at is stamped with the ingestion time on both paths.
    """
    normalized = validate_email(email)
    access_type = classify_product(product_title)
    now = datetime.now(timezone.utc)

    buyer = get_buyer_by_email(db, normalized)
    if buyer:
        buyer.name = name.strip()
        buyer.product_title = product_title
        buyer.access_type = access_type
        buyer.ref_id = ref_id or None
        buyer.amount = amount or None
        buyer.purchased_at = now
        logger.info("Updated buyer %s (access_type=%s, product=%s)", normalized, access_type.value, product_title)
    else:
        buyer = Buyer(
            email=normalized,
            name=name.strip(),
            product_title=product_title,
            access_type=access_type,
            ref_id=ref_id or None,
            amount=amount or None,
            purchased_at=now,
        )
        db.add(buyer)
        logger.info("Inserted buyer %s (access_type=%s, product=%s)", normalized, access_type.value, product_title)

    db.commit()
    db.refresh(buyer)
    return buyer


def import_buyer_rows(db: Session, rows) -> Tuple[int, int]:
    """
    Upsert parsed CSV rows by email, keeping the tier exactly as given.

    Returns (inserted, updated). One commit for the whole batch; a repeated
    email later in the batch updates the row staged for the earlier one.
    """
    inserted = updated = 0
    staged: Dict[str, Buyer] = {}
    for row in rows:
        email = normalize_email(row.email)
        fields = dict(
            name=row.name,
            product_title=row.product_title,
            access_type=row.access_type,
            amount=row.amount,
            ref_id=row.ref_id,
        )
        if row.purchased_at is not None:
            fields["purchased_at"] = row.purchased_at

        buyer = staged.get(email) or get_buyer_by_email(db, email)
        if buyer:
            for key, value in fields.items():
                setattr(buyer, key, value)
            updated += 1
        else:
            buyer = Buyer(email=email, **fields)
            db.add(buyer)
            inserted += 1
        staged[email] = buyer

    db.commit()
    logger.info("CSV import: %d inserted, %d updated", inserted, updated)
    return inserted, updated
