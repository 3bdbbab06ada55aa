from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Optional, List, Literal, Union, Annotated, Any, Dict

from app.models.homepage import BackgroundType, ElementType


# Element content: one shape per ElementType, selected by "type"

class HeadingContent(BaseModel):
    type: Literal["heading"] = "heading"
    level: int = Field(2, ge=1, le=6)
    text: str
    gradient: bool = False
    centered: bool = False


class ParagraphContent(BaseModel):
    type: Literal["paragraph"] = "paragraph"
    text: str
    centered: bool = False
    max_width: Optional[str] = None


class ButtonContent(BaseModel):
    type: Literal["button"] = "button"
    text: str
    link: str
    variant: Literal["default", "outline", "ghost"] = "default"
    icon: Optional[str] = None
    size: Literal["default", "sm", "lg"] = "default"


class CardItem(BaseModel):
    title: str
    description: str = ""
    link: Optional[str] = None
    icon: Optional[str] = None
    badge: Optional[str] = None


class CardContent(CardItem):
    type: Literal["card"] = "card"


class VideoContent(BaseModel):
    type: Literal["video"] = "video"
    youtube_url: str
    title: Optional[str] = None


class CardGroupContent(BaseModel):
    type: Literal["card_group"] = "card_group"
    layout: Literal["2-col", "3-col"] = "3-col"
    items: List[CardItem] = []


ElementContent = Annotated[
    Union[HeadingContent, ParagraphContent, ButtonContent, CardContent, VideoContent, CardGroupContent],
    Field(discriminator="type"),
]


def _tag_content(data: Any) -> Any:
    """Copy the element's type into its content so the union can discriminate"""
    if isinstance(data, dict) and isinstance(data.get("content"), dict) and data.get("type") is not None:
        element_type = data["type"]
        if isinstance(element_type, ElementType):
            element_type = element_type.value
        data = {**data, "content": {**data["content"], "type": element_type}}
    return data


def content_to_json(content: BaseModel) -> Dict[str, Any]:
    """Stored form: the type lives on the element row, not inside content"""
    return content.model_dump(exclude={"type"})


class ElementCreate(BaseModel):
    type: ElementType
    content: ElementContent
    is_visible: bool = True

    @model_validator(mode="before")
    @classmethod
    def tag_content(cls, data: Any) -> Any:
        return _tag_content(data)


class ElementUpdate(BaseModel):
    """Changing type requires sending matching content"""
    type: Optional[ElementType] = None
    content: Optional[Dict[str, Any]] = None
    is_visible: Optional[bool] = None


class ElementResponse(BaseModel):
    id: int
    section_id: int
    type: ElementType
    content: Dict[str, Any]
    order_index: int
    is_visible: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    title: Optional[str] = Field(None, max_length=500)
    subtitle: Optional[str] = Field(None, max_length=1000)
    background: BackgroundType = BackgroundType.DEFAULT
    is_visible: bool = True


class SectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    title: Optional[str] = Field(None, max_length=500)
    subtitle: Optional[str] = Field(None, max_length=1000)
    background: Optional[BackgroundType] = None
    is_visible: Optional[bool] = None


class SectionResponse(BaseModel):
    id: int
    name: str
    title: Optional[str] = None
    subtitle: Optional[str] = None
    background: BackgroundType
    order_index: int
    is_visible: bool
    elements: List[ElementResponse] = []

    class Config:
        from_attributes = True


class VisibilityToggle(BaseModel):
    is_visible: bool
