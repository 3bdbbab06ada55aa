"""
Member-facing views of the course catalog.

Access is decided per course; modules and materials inherit their course's
level. A locked view keeps the metadata and drops the content.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.buyer import AccessType
from app.models.course import Course, Module
from app.schemas.courses import CourseSummary, CourseDetail, MaterialResponse, ModuleSummary, ModuleDetail
from app.services.access import can_access
from app.services.video import embed_url


def published_courses(db: Session) -> List[Course]:
    return (
        db.query(Course)
        .filter(Course.is_published.is_(True))
        .order_by(Course.order_index)
        .all()
    )


def get_published_course(db: Session, course_id: int) -> Optional[Course]:
    return (
        db.query(Course)
        .filter(Course.id == course_id, Course.is_published.is_(True))
        .first()
    )


def course_summary(course: Course, tier: Optional[AccessType]) -> CourseSummary:
    return CourseSummary(
        id=course.id,
        title=course.title,
        description=course.description,
        thumbnail_url=course.thumbnail_url,
        access_level=course.access_level,
        order_index=course.order_index,
        locked=not can_access(tier, course.access_level),
    )


def course_detail(course: Course, tier: Optional[AccessType]) -> CourseDetail:
    summary = course_summary(course, tier)
    modules = []
    if not summary.locked:
        modules = [
            ModuleSummary(
                id=m.id,
                title=m.title,
                description=m.description,
                order_index=m.order_index,
                material_count=len(m.materials),
            )
            for m in sorted(course.modules, key=lambda m: m.order_index)
        ]
    return CourseDetail(**summary.model_dump(), modules=modules)


def material_response(material) -> MaterialResponse:
    response = MaterialResponse.model_validate(material)
    return response.model_copy(update={"embed_url": embed_url(material.media_url)})


def module_detail(module: Module, tier: Optional[AccessType]) -> ModuleDetail:
    course = module.course
    locked = not can_access(tier, course.access_level)
    materials = []
    if not locked:
        for material in sorted(module.materials, key=lambda m: m.order_index):
            materials.append(material_response(material))
    return ModuleDetail(
        id=module.id,
        course_id=module.course_id,
        title=module.title,
        description=module.description,
        order_index=module.order_index,
        locked=locked,
        access_level=course.access_level,
        materials=materials,
    )
