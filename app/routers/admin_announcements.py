import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth.dependencies import require_admin
from app.database import get_db
from app.models.announcement import Announcement
from app.schemas.announcements import AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/announcements", tags=["Admin Announcements"])


def _get_or_404(db: Session, announcement_id: int) -> Announcement:
    announcement = db.query(Announcement).filter(Announcement.id == announcement_id).first()
    if not announcement:
        raise HTTPException(status_code=404, detail="Announcement not found")
    return announcement


def _stamp_publication(announcement: Announcement, is_published: bool):
    """Publishing (again) stamps published_at with the current time"""
    if is_published:
        announcement.published_at = datetime.now(timezone.utc)
    announcement.is_published = is_published


@router.get("", response_model=list[AnnouncementResponse])
def list_announcements(db: Session = Depends(get_db), _=Depends(require_admin)):
    return db.query(Announcement).order_by(Announcement.created_at.desc()).all()


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
def create_announcement(data: AnnouncementCreate, db: Session = Depends(get_db), _=Depends(require_admin)):
    announcement = Announcement(**data.model_dump(exclude={"is_published"}))
    _stamp_publication(announcement, data.is_published)
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    logger.info("Created announcement %s (published=%s)", announcement.id, announcement.is_published)
    return announcement


@router.get("/{announcement_id}", response_model=AnnouncementResponse)
def get_announcement(announcement_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    return _get_or_404(db, announcement_id)


@router.patch("/{announcement_id}", response_model=AnnouncementResponse)
def update_announcement(
    announcement_id: int,
    data: AnnouncementUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    announcement = _get_or_404(db, announcement_id)
    updates = data.model_dump(exclude_unset=True)
    is_published = updates.pop("is_published", None)

    for key, value in updates.items():
        setattr(announcement, key, value)
    if is_published is not None:
        _stamp_publication(announcement, is_published)

    db.commit()
    db.refresh(announcement)
    return announcement


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_announcement(announcement_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    announcement = _get_or_404(db, announcement_id)
    db.delete(announcement)
    db.commit()
