from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Dict

from app.models.course import CourseAccessLevel, MaterialType


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = Field(None, max_length=1000)
    is_published: bool = False
    access_level: CourseAccessLevel = CourseAccessLevel.PUBLIC

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Course title is required")
        return v.strip()


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = Field(None, max_length=1000)
    is_published: Optional[bool] = None
    access_level: Optional[CourseAccessLevel] = None


class CourseResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_published: bool
    access_level: CourseAccessLevel
    order_index: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ModuleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ModuleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class ModuleResponse(BaseModel):
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    order_index: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaterialCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    type: Optional[MaterialType] = None
    content: Optional[str] = None
    media_url: Optional[str] = Field(None, max_length=1000)
    button_text: Optional[str] = Field(None, max_length=255)
    button_url: Optional[str] = Field(None, max_length=1000)


class MaterialUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[MaterialType] = None
    content: Optional[str] = None
    media_url: Optional[str] = Field(None, max_length=1000)
    button_text: Optional[str] = Field(None, max_length=255)
    button_url: Optional[str] = Field(None, max_length=1000)
    module_id: Optional[int] = None


class MaterialResponse(BaseModel):
    id: int
    module_id: int
    title: str
    type: Optional[MaterialType] = None
    content: Optional[str] = None
    media_url: Optional[str] = None
    embed_url: Optional[str] = None
    button_text: Optional[str] = None
    button_url: Optional[str] = None
    order_index: int

    class Config:
        from_attributes = True


class CourseStatsResponse(BaseModel):
    total_courses: int
    published_courses: int
    draft_courses: int
    total_buyers: int
    buyers_by_access_type: Dict[str, int]


# Public/member views

class CourseSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    access_level: CourseAccessLevel
    order_index: int
    locked: bool


class ModuleSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    order_index: int
    material_count: int = 0


class CourseDetail(CourseSummary):
    """Locked courses carry no modules"""
    modules: List[ModuleSummary] = []


class ModuleDetail(BaseModel):
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    order_index: int
    locked: bool
    access_level: CourseAccessLevel
    materials: List[MaterialResponse] = []
