"""
Admin buyer management: list/search, explicit-tier create and update, delete,
CSV import and export.
"""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.auth.dependencies import require_admin
from app.database import get_db
from app.models.buyer import AccessType, Buyer
from app.schemas.buyers import (
    BuyerCreate,
    BuyerUpdate,
    BuyerResponse,
    BuyerListResponse,
    BulkDeleteRequest,
    BulkDeleteResponse,
    CSVImportRequest,
    CSVImportResponse,
    CSVRowError,
)
from app.services.buyer_csv import buyers_to_csv, parse_buyers_csv
from app.services.buyers import get_buyer_by_email, import_buyer_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/buyers", tags=["Admin Buyers"])


def _filtered_query(db: Session, search: Optional[str], access_type: Optional[AccessType]):
    query = db.query(Buyer)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Buyer.email.ilike(pattern),
            Buyer.name.ilike(pattern),
            Buyer.product_title.ilike(pattern),
        ))
    if access_type:
        query = query.filter(Buyer.access_type == access_type)
    return query


def _get_buyer_or_404(db: Session, buyer_id: int) -> Buyer:
    buyer = db.query(Buyer).filter(Buyer.id == buyer_id).first()
    if not buyer:
        raise HTTPException(status_code=404, detail="Buyer not found")
    return buyer


@router.get("", response_model=BuyerListResponse)
def list_buyers(
    search: Optional[str] = Query(None, description="Matches email, name or product title"),
    access_type: Optional[AccessType] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    query = _filtered_query(db, search, access_type)
    total = query.count()
    items = query.order_by(Buyer.purchased_at.desc()).offset(offset).limit(limit).all()
    return BuyerListResponse(items=items, total=total)


@router.get("/export")
def export_buyers(
    search: Optional[str] = Query(None),
    access_type: Optional[AccessType] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    buyers = _filtered_query(db, search, access_type).order_by(Buyer.purchased_at.desc()).all()
    content = buyers_to_csv(buyers)
    filename = f"buyers_{datetime.now().strftime('%Y%m%d')}.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/import", response_model=CSVImportResponse)
def import_buyers(
    data: CSVImportRequest,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    """
    Parse and (unless dry_run) upsert buyers from CSV.

    Valid rows are imported even when other rows have errors; the errors are
    reported with their row numbers.
    """
    parsed = parse_buyers_csv(data.csv_data)
    errors = [CSVRowError(row=e.row, error=e.error) for e in parsed.errors]

    if data.dry_run or not parsed.success:
        return CSVImportResponse(dry_run=data.dry_run, valid_rows=len(parsed.success), errors=errors)

    inserted, updated = import_buyer_rows(db, parsed.success)
    return CSVImportResponse(
        dry_run=False,
        valid_rows=len(parsed.success),
        inserted=inserted,
        updated=updated,
        errors=errors,
    )


@router.post("", response_model=BuyerResponse, status_code=status.HTTP_201_CREATED)
def create_buyer(
    data: BuyerCreate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    if get_buyer_by_email(db, data.email):
        raise HTTPException(status_code=400, detail="A buyer with this email already exists")

    fields = data.model_dump(exclude_none=True)
    buyer = Buyer(**fields)
    db.add(buyer)
    db.commit()
    db.refresh(buyer)
    logger.info("Admin created buyer %s (access_type=%s)", buyer.email, data.access_type.value)
    return buyer


@router.get("/{buyer_id}", response_model=BuyerResponse)
def get_buyer(buyer_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    return _get_buyer_or_404(db, buyer_id)


@router.patch("/{buyer_id}", response_model=BuyerResponse)
def update_buyer(
    buyer_id: int,
    data: BuyerUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    buyer = _get_buyer_or_404(db, buyer_id)
    updates = data.model_dump(exclude_unset=True)

    new_email = updates.get("email")
    if new_email and new_email != buyer.email:
        existing = get_buyer_by_email(db, new_email)
        if existing and existing.id != buyer.id:
            raise HTTPException(status_code=400, detail="A buyer with this email already exists")

    for key, value in updates.items():
        if value is None and key in ("email", "name", "product_title", "access_type"):
            continue
        setattr(buyer, key, value)

    db.commit()
    db.refresh(buyer)
    return buyer


@router.delete("/{buyer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_buyer(buyer_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    buyer = _get_buyer_or_404(db, buyer_id)
    db.delete(buyer)
    db.commit()
    logger.info("Admin deleted buyer %s", buyer.email)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete_buyers(
    data: BulkDeleteRequest,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    deleted = db.query(Buyer).filter(Buyer.id.in_(data.ids)).delete(synchronize_session=False)
    db.commit()
    logger.info("Admin bulk-deleted %d buyers", deleted)
    return BulkDeleteResponse(deleted=deleted)
