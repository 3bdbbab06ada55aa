"""
Admin course catalog: courses, their modules, and module materials.

New rows are appended at the end of their sibling list. Reorders write the
whole dense mapping for the affected scope.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth.dependencies import require_admin
from app.database import get_db
from app.models.buyer import AccessType, Buyer
from app.models.course import Course, Module, Material
from app.schemas.courses import (
    CourseCreate,
    CourseUpdate,
    CourseResponse,
    CourseStatsResponse,
    ModuleCreate,
    ModuleUpdate,
    ModuleResponse,
    MaterialCreate,
    MaterialUpdate,
    MaterialResponse,
)
from app.schemas.reorder import ReorderRequest, ReorderResponse
from app.services.reorder import compact_order_index, next_order_index, reorder_siblings
from app.services.catalog import material_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Courses"])


def _get_or_404(db: Session, model, obj_id: int, label: str):
    obj = db.query(model).filter(model.id == obj_id).first()
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


def _reorder(db: Session, model, siblings, data: ReorderRequest, scope: str) -> ReorderResponse:
    assignments = reorder_siblings(
        db, model, siblings, scope, data.from_index, data.to_index, data.ordered_ids
    )
    return ReorderResponse.from_assignments(assignments)


# Courses

@router.get("/courses", response_model=list[CourseResponse])
def list_courses(db: Session = Depends(get_db), _=Depends(require_admin)):
    return db.query(Course).order_by(Course.order_index).all()


@router.get("/courses/stats", response_model=CourseStatsResponse)
def course_stats(db: Session = Depends(get_db), _=Depends(require_admin)):
    total = db.query(func.count(Course.id)).scalar() or 0
    published = db.query(func.count(Course.id)).filter(Course.is_published.is_(True)).scalar() or 0
    rows = db.query(Buyer.access_type, func.count(Buyer.id)).group_by(Buyer.access_type).all()
    by_type = {t.value: 0 for t in AccessType}
    for access_type, count in rows:
        by_type[AccessType(access_type).value] = count
    return CourseStatsResponse(
        total_courses=total,
        published_courses=published,
        draft_courses=total - published,
        total_buyers=sum(by_type.values()),
        buyers_by_access_type=by_type,
    )


@router.post("/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(data: CourseCreate, db: Session = Depends(get_db), _=Depends(require_admin)):
    course = Course(**data.model_dump(), order_index=next_order_index(db, Course))
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Created course %s (%s)", course.id, course.title)
    return course


@router.get("/courses/{course_id}", response_model=CourseResponse)
def get_course(course_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    return _get_or_404(db, Course, course_id, "Course")


@router.patch("/courses/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: int,
    data: CourseUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    course = _get_or_404(db, Course, course_id, "Course")
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(course, key, value)
    db.commit()
    db.refresh(course)
    return course


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(course_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    course = _get_or_404(db, Course, course_id, "Course")
    db.delete(course)
    compact_order_index(db, Course, Course.id != course_id)
    db.commit()
    logger.info("Deleted course %s", course_id)


@router.post("/courses/reorder", response_model=ReorderResponse)
def reorder_courses(data: ReorderRequest, db: Session = Depends(get_db), _=Depends(require_admin)):
    siblings = db.query(Course).order_by(Course.order_index).all()
    return _reorder(db, Course, siblings, data, "courses")


# Modules

@router.get("/courses/{course_id}/modules", response_model=list[ModuleResponse])
def list_modules(course_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    _get_or_404(db, Course, course_id, "Course")
    return db.query(Module).filter(Module.course_id == course_id).order_by(Module.order_index).all()


@router.post("/courses/{course_id}/modules", response_model=ModuleResponse, status_code=status.HTTP_201_CREATED)
def create_module(
    course_id: int,
    data: ModuleCreate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    _get_or_404(db, Course, course_id, "Course")
    module = Module(
        course_id=course_id,
        **data.model_dump(),
        order_index=next_order_index(db, Module, Module.course_id == course_id),
    )
    db.add(module)
    db.commit()
    db.refresh(module)
    return module


@router.post("/courses/{course_id}/modules/reorder", response_model=ReorderResponse)
def reorder_modules(
    course_id: int,
    data: ReorderRequest,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    _get_or_404(db, Course, course_id, "Course")
    siblings = db.query(Module).filter(Module.course_id == course_id).order_by(Module.order_index).all()
    return _reorder(db, Module, siblings, data, f"modules of course {course_id}")


@router.get("/modules/{module_id}", response_model=ModuleResponse)
def get_module(module_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    return _get_or_404(db, Module, module_id, "Module")


@router.patch("/modules/{module_id}", response_model=ModuleResponse)
def update_module(
    module_id: int,
    data: ModuleUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    module = _get_or_404(db, Module, module_id, "Module")
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(module, key, value)
    db.commit()
    db.refresh(module)
    return module


@router.delete("/modules/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_module(module_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    module = _get_or_404(db, Module, module_id, "Module")
    db.delete(module)
    compact_order_index(db, Module, Module.course_id == module.course_id, Module.id != module_id)
    db.commit()


# Materials

@router.get("/modules/{module_id}/materials", response_model=list[MaterialResponse])
def list_materials(module_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    _get_or_404(db, Module, module_id, "Module")
    materials = (
        db.query(Material).filter(Material.module_id == module_id).order_by(Material.order_index).all()
    )
    return [material_response(m) for m in materials]


@router.post("/modules/{module_id}/materials", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
def create_material(
    module_id: int,
    data: MaterialCreate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    _get_or_404(db, Module, module_id, "Module")
    material = Material(
        module_id=module_id,
        **data.model_dump(),
        order_index=next_order_index(db, Material, Material.module_id == module_id),
    )
    db.add(material)
    db.commit()
    db.refresh(material)
    return material_response(material)


@router.post("/modules/{module_id}/materials/reorder", response_model=ReorderResponse)
def reorder_materials(
    module_id: int,
    data: ReorderRequest,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    _get_or_404(db, Module, module_id, "Module")
    siblings = (
        db.query(Material).filter(Material.module_id == module_id).order_by(Material.order_index).all()
    )
    return _reorder(db, Material, siblings, data, f"materials of module {module_id}")


@router.patch("/materials/{material_id}", response_model=MaterialResponse)
def update_material(
    material_id: int,
    data: MaterialUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    material = _get_or_404(db, Material, material_id, "Material")
    updates = data.model_dump(exclude_unset=True)

    target_module_id = updates.pop("module_id", None)
    if target_module_id is not None and target_module_id != material.module_id:
        _get_or_404(db, Module, target_module_id, "Module")
        source_module_id = material.module_id
        material.order_index = next_order_index(db, Material, Material.module_id == target_module_id)
        material.module_id = target_module_id
        compact_order_index(
            db, Material, Material.module_id == source_module_id, Material.id != material_id
        )

    for key, value in updates.items():
        setattr(material, key, value)
    db.commit()
    db.refresh(material)
    return material_response(material)


@router.delete("/materials/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_material(material_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    material = _get_or_404(db, Material, material_id, "Material")
    db.delete(material)
    compact_order_index(db, Material, Material.module_id == material.module_id, Material.id != material_id)
    db.commit()
