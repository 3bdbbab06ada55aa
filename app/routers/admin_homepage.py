"""
Admin homepage builder: sections and their typed content elements.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.auth.dependencies import require_admin
from app.database import get_db
from app.models.homepage import HomepageSection, HomepageElement
from app.schemas.homepage import (
    ElementContent,
    ElementCreate,
    ElementUpdate,
    ElementResponse,
    SectionCreate,
    SectionUpdate,
    SectionResponse,
    VisibilityToggle,
    content_to_json,
)
from app.schemas.reorder import ReorderRequest, ReorderResponse
from app.services.reorder import compact_order_index, next_order_index, reorder_siblings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/homepage", tags=["Admin Homepage"])

content_adapter = TypeAdapter(ElementContent)


def _get_section_or_404(db: Session, section_id: int) -> HomepageSection:
    section = db.query(HomepageSection).filter(HomepageSection.id == section_id).first()
    if not section:
        raise HTTPException(status_code=404, detail="Section not found")
    return section


def _get_element_or_404(db: Session, element_id: int) -> HomepageElement:
    element = db.query(HomepageElement).filter(HomepageElement.id == element_id).first()
    if not element:
        raise HTTPException(status_code=404, detail="Element not found")
    return element


def _reorder(db: Session, model, siblings, data: ReorderRequest, scope: str) -> ReorderResponse:
    assignments = reorder_siblings(
        db, model, siblings, scope, data.from_index, data.to_index, data.ordered_ids
    )
    return ReorderResponse.from_assignments(assignments)


# Sections

@router.get("/sections", response_model=list[SectionResponse])
def list_sections(db: Session = Depends(get_db), _=Depends(require_admin)):
    return db.query(HomepageSection).order_by(HomepageSection.order_index).all()


@router.post("/sections", response_model=SectionResponse, status_code=status.HTTP_201_CREATED)
def create_section(data: SectionCreate, db: Session = Depends(get_db), _=Depends(require_admin)):
    section = HomepageSection(**data.model_dump(), order_index=next_order_index(db, HomepageSection))
    db.add(section)
    db.commit()
    db.refresh(section)
    return section


@router.post("/sections/reorder", response_model=ReorderResponse)
def reorder_sections(data: ReorderRequest, db: Session = Depends(get_db), _=Depends(require_admin)):
    siblings = db.query(HomepageSection).order_by(HomepageSection.order_index).all()
    return _reorder(db, HomepageSection, siblings, data, "homepage sections")


@router.patch("/sections/{section_id}", response_model=SectionResponse)
def update_section(
    section_id: int,
    data: SectionUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    section = _get_section_or_404(db, section_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(section, key, value)
    db.commit()
    db.refresh(section)
    return section


@router.patch("/sections/{section_id}/visibility", response_model=SectionResponse)
def toggle_section_visibility(
    section_id: int,
    data: VisibilityToggle,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    section = _get_section_or_404(db, section_id)
    section.is_visible = data.is_visible
    db.commit()
    db.refresh(section)
    return section


@router.delete("/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_section(section_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    section = _get_section_or_404(db, section_id)
    db.delete(section)
    compact_order_index(db, HomepageSection, HomepageSection.id != section_id)
    db.commit()


# Elements

@router.post(
    "/sections/{section_id}/elements",
    response_model=ElementResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_element(
    section_id: int,
    data: ElementCreate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    _get_section_or_404(db, section_id)
    element = HomepageElement(
        section_id=section_id,
        type=data.type,
        content=content_to_json(data.content),
        is_visible=data.is_visible,
        order_index=next_order_index(db, HomepageElement, HomepageElement.section_id == section_id),
    )
    db.add(element)
    db.commit()
    db.refresh(element)
    return element


@router.post("/sections/{section_id}/elements/reorder", response_model=ReorderResponse)
def reorder_elements(
    section_id: int,
    data: ReorderRequest,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    _get_section_or_404(db, section_id)
    siblings = (
        db.query(HomepageElement)
        .filter(HomepageElement.section_id == section_id)
        .order_by(HomepageElement.order_index)
        .all()
    )
    return _reorder(db, HomepageElement, siblings, data, f"elements of section {section_id}")


@router.patch("/elements/{element_id}", response_model=ElementResponse)
def update_element(
    element_id: int,
    data: ElementUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    element = _get_element_or_404(db, element_id)
    element_type = data.type or element.type

    if data.type is not None and data.type != element.type and data.content is None:
        raise HTTPException(status_code=400, detail="Changing the element type requires new content")

    if data.content is not None:
        try:
            content = content_adapter.validate_python({**data.content, "type": element_type.value})
        except PydanticValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False))
        element.content = content_to_json(content)
    element.type = element_type

    if data.is_visible is not None:
        element.is_visible = data.is_visible

    db.commit()
    db.refresh(element)
    return element


@router.patch("/elements/{element_id}/visibility", response_model=ElementResponse)
def toggle_element_visibility(
    element_id: int,
    data: VisibilityToggle,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    element = _get_element_or_404(db, element_id)
    element.is_visible = data.is_visible
    db.commit()
    db.refresh(element)
    return element


@router.delete("/elements/{element_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_element(element_id: int, db: Session = Depends(get_db), _=Depends(require_admin)):
    element = _get_element_or_404(db, element_id)
    db.delete(element)
    compact_order_index(
        db, HomepageElement, HomepageElement.section_id == element.section_id, HomepageElement.id != element_id
    )
    db.commit()
