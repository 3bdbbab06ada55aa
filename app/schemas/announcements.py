from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    is_published: bool = False
    link_url: Optional[str] = Field(None, max_length=1000)
    link_text: Optional[str] = Field(None, max_length=255)


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    is_published: Optional[bool] = None
    link_url: Optional[str] = Field(None, max_length=1000)
    link_text: Optional[str] = Field(None, max_length=255)


class AnnouncementResponse(BaseModel):
    id: int
    title: str
    content: str
    is_published: bool
    published_at: Optional[datetime] = None
    link_url: Optional[str] = None
    link_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberAnnouncementResponse(BaseModel):
    id: int
    title: str
    content: str
    published_at: Optional[datetime] = None
    link_url: Optional[str] = None
    link_text: Optional[str] = None
    is_read: bool


class UnreadCountResponse(BaseModel):
    unread: int
