"""
Public catalog and homepage. Anonymous visitors are allowed; a member session
header, when present, unlocks content for the member's tier.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.auth.member import get_member_tier
from app.database import get_db
from app.models.buyer import AccessType
from app.models.course import Module
from app.models.homepage import HomepageSection
from app.schemas.courses import CourseSummary, CourseDetail, ModuleDetail
from app.schemas.homepage import SectionResponse, ElementResponse
from app.services.catalog import (
    course_detail,
    course_summary,
    get_published_course,
    module_detail,
    published_courses,
)

router = APIRouter(tags=["Public"])


@router.get("/homepage", response_model=list[SectionResponse])
def get_homepage(db: Session = Depends(get_db)):
    """Visible sections in order, each with its visible elements in order"""
    sections = (
        db.query(HomepageSection)
        .filter(HomepageSection.is_visible.is_(True))
        .order_by(HomepageSection.order_index)
        .all()
    )
    result = []
    for section in sections:
        response = SectionResponse.model_validate(section)
        elements = sorted((e for e in section.elements if e.is_visible), key=lambda e: e.order_index)
        result.append(response.model_copy(
            update={"elements": [ElementResponse.model_validate(e) for e in elements]}
        ))
    return result


@router.get("/courses", response_model=list[CourseSummary])
def list_courses(
    db: Session = Depends(get_db),
    tier: Optional[AccessType] = Depends(get_member_tier),
):
    return [course_summary(course, tier) for course in published_courses(db)]


@router.get("/courses/{course_id}", response_model=CourseDetail)
def get_course(
    course_id: int,
    db: Session = Depends(get_db),
    tier: Optional[AccessType] = Depends(get_member_tier),
):
    course = get_published_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course_detail(course, tier)


@router.get("/modules/{module_id}", response_model=ModuleDetail)
def get_module(
    module_id: int,
    db: Session = Depends(get_db),
    tier: Optional[AccessType] = Depends(get_member_tier),
):
    module = db.query(Module).filter(Module.id == module_id).first()
    if not module or not module.course.is_published:
        raise HTTPException(status_code=404, detail="Module not found")
    return module_detail(module, tier)
