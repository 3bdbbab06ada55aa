"""
Member portal: email login, session revalidation, profile, "my courses"
enrollments and announcements.
"""
import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.member import (
    SESSION_HEADER,
    build_session_store,
    new_session_token,
    open_session_store,
    remember_session,
    require_member,
)
from app.auth.rate_limiter import member_login_limiter
from app.database import get_db
from app.exceptions import NotFoundError
from app.models.announcement import Announcement, AnnouncementRead
from app.models.enrollment import Enrollment
from app.schemas.announcements import MemberAnnouncementResponse, UnreadCountResponse
from app.schemas.member import (
    EnrollmentRequest,
    EnrollmentResponse,
    MemberLoginRequest,
    MemberLoginResponse,
    MemberSessionResponse,
    ProfileResponse,
    ProfileUpdate,
)
from app.services.access import can_access
from app.services.buyers import get_buyer_by_email
from app.services.catalog import course_summary, get_published_course
from app.services.member_session import SessionStore, SessionState, registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/member", tags=["Member"])


def session_response(store: Optional[SessionStore]) -> MemberSessionResponse:
    if store is None or not store.is_authenticated:
        return MemberSessionResponse(state=SessionState.ANONYMOUS.value)
    return MemberSessionResponse(
        state=store.state.value,
        email=store.email,
        access_type=store.current_tier,
        has_pro_access=store.has_pro_access,
        has_basic_access=store.has_basic_access,
        established_at=store.established_at,
        expires_at=store.established_at + store.duration,
    )


# Session

@router.post("/login", response_model=MemberLoginResponse)
async def login(
    data: MemberLoginRequest,
    x_member_session: Optional[str] = Header(None, alias=SESSION_HEADER),
):
    identifier = data.email.strip().lower()
    if member_login_limiter.is_blocked(identifier):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many failed attempts. Please try again in {member_login_limiter.window_minutes} minutes."
        )

    token = x_member_session or new_session_token()
    store = await open_session_store(token)
    result = await store.login(data.email)
    remember_session(token, store)

    if not result.success:
        if isinstance(result.error, NotFoundError):
            member_login_limiter.record_failed_attempt(identifier)
        logger.info("Member login failed for %s: %s", identifier, result.error.code)
        raise HTTPException(status_code=result.error.status_code, detail=result.message)

    member_login_limiter.reset(identifier)
    return MemberLoginResponse(success=True, token=token, session=session_response(store))


@router.get("/session", response_model=MemberSessionResponse)
async def get_session(x_member_session: Optional[str] = Header(None, alias=SESSION_HEADER)):
    """Page-load revalidation: re-derives the tier from the buyer store"""
    if not x_member_session:
        return session_response(None)
    store = await open_session_store(x_member_session, reload=True)
    return session_response(store)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(x_member_session: Optional[str] = Header(None, alias=SESSION_HEADER)):
    if not x_member_session:
        return
    store = registry.discard(x_member_session) or build_session_store(x_member_session)
    store.logout()


# Profile

@router.get("/profile", response_model=ProfileResponse)
def get_profile(store: SessionStore = Depends(require_member), db: Session = Depends(get_db)):
    buyer = get_buyer_by_email(db, store.email)
    if not buyer:
        raise HTTPException(status_code=404, detail="Buyer not found")
    return ProfileResponse(
        email=buyer.email,
        name=buyer.name,
        product_title=buyer.product_title,
        access_type=buyer.access_type,
        purchased_at=buyer.purchased_at,
    )


@router.patch("/profile", response_model=ProfileResponse)
def update_profile(
    data: ProfileUpdate,
    store: SessionStore = Depends(require_member),
    db: Session = Depends(get_db),
):
    """Members may only change their display name"""
    buyer = get_buyer_by_email(db, store.email)
    if not buyer:
        raise HTTPException(status_code=404, detail="Buyer not found")
    buyer.name = data.name.strip()
    db.commit()
    db.refresh(buyer)
    return ProfileResponse(
        email=buyer.email,
        name=buyer.name,
        product_title=buyer.product_title,
        access_type=buyer.access_type,
        purchased_at=buyer.purchased_at,
    )


# Enrollments

def _enrollment_response(enrollment: Enrollment, store: SessionStore) -> EnrollmentResponse:
    course = enrollment.course
    return EnrollmentResponse(
        id=enrollment.id,
        course_id=enrollment.course_id,
        enrolled_at=enrollment.enrolled_at,
        course=course_summary(course, store.current_tier) if course else None,
    )


@router.get("/enrollments", response_model=list[EnrollmentResponse])
def list_enrollments(store: SessionStore = Depends(require_member), db: Session = Depends(get_db)):
    enrollments = (
        db.query(Enrollment)
        .filter(Enrollment.buyer_email == store.email)
        .order_by(Enrollment.enrolled_at.desc())
        .all()
    )
    return [_enrollment_response(e, store) for e in enrollments]


@router.post("/enrollments", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
def enroll(
    data: EnrollmentRequest,
    store: SessionStore = Depends(require_member),
    db: Session = Depends(get_db),
):
    course = get_published_course(db, data.course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    if not can_access(store.current_tier, course.access_level):
        raise HTTPException(status_code=403, detail="Your access tier does not include this course")

    existing = (
        db.query(Enrollment)
        .filter(Enrollment.buyer_email == store.email, Enrollment.course_id == course.id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=400, detail="Already enrolled in this course")

    enrollment = Enrollment(buyer_email=store.email, course_id=course.id)
    db.add(enrollment)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Already enrolled in this course")
    db.refresh(enrollment)
    logger.info("Member %s enrolled in course %s", store.email, course.id)
    return _enrollment_response(enrollment, store)


@router.delete("/enrollments/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def unenroll(course_id: int, store: SessionStore = Depends(require_member), db: Session = Depends(get_db)):
    enrollment = (
        db.query(Enrollment)
        .filter(Enrollment.buyer_email == store.email, Enrollment.course_id == course_id)
        .first()
    )
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    db.delete(enrollment)
    db.commit()


# Announcements

@router.get("/announcements", response_model=list[MemberAnnouncementResponse])
def list_announcements(store: SessionStore = Depends(require_member), db: Session = Depends(get_db)):
    announcements = (
        db.query(Announcement)
        .filter(Announcement.is_published.is_(True))
        .order_by(Announcement.published_at.desc())
        .all()
    )
    read_ids = {
        row.announcement_id
        for row in db.query(AnnouncementRead).filter(AnnouncementRead.buyer_email == store.email).all()
    }
    return [
        MemberAnnouncementResponse(
            id=a.id,
            title=a.title,
            content=a.content,
            published_at=a.published_at,
            link_url=a.link_url,
            link_text=a.link_text,
            is_read=a.id in read_ids,
        )
        for a in announcements
    ]


@router.get("/announcements/unread-count", response_model=UnreadCountResponse)
def unread_count(store: SessionStore = Depends(require_member), db: Session = Depends(get_db)):
    published = db.query(func.count(Announcement.id)).filter(Announcement.is_published.is_(True)).scalar() or 0
    read = (
        db.query(func.count(AnnouncementRead.id))
        .join(Announcement, Announcement.id == AnnouncementRead.announcement_id)
        .filter(AnnouncementRead.buyer_email == store.email, Announcement.is_published.is_(True))
        .scalar()
        or 0
    )
    return UnreadCountResponse(unread=max(0, published - read))


@router.post("/announcements/{announcement_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_read(announcement_id: int, store: SessionStore = Depends(require_member), db: Session = Depends(get_db)):
    """Idempotent: a second call for the same announcement is a no-op"""
    announcement = (
        db.query(Announcement)
        .filter(Announcement.id == announcement_id, Announcement.is_published.is_(True))
        .first()
    )
    if not announcement:
        raise HTTPException(status_code=404, detail="Announcement not found")

    existing = (
        db.query(AnnouncementRead)
        .filter(AnnouncementRead.announcement_id == announcement_id, AnnouncementRead.buyer_email == store.email)
        .first()
    )
    if existing:
        return

    db.add(AnnouncementRead(
        announcement_id=announcement_id,
        buyer_email=store.email,
        read_at=datetime.now(timezone.utc),
    ))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
