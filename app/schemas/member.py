from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from app.models.buyer import AccessType
from app.schemas.courses import CourseSummary


class MemberLoginRequest(BaseModel):
    # Plain str: format problems are reported by the session store, not as a 422
    email: str


class MemberSessionResponse(BaseModel):
    state: str
    email: Optional[str] = None
    access_type: Optional[AccessType] = None
    has_pro_access: bool = False
    has_basic_access: bool = False
    established_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class MemberLoginResponse(BaseModel):
    success: bool
    token: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    session: Optional[MemberSessionResponse] = None


class ProfileResponse(BaseModel):
    email: str
    name: str
    product_title: str
    access_type: AccessType
    purchased_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class EnrollmentRequest(BaseModel):
    course_id: int


class EnrollmentResponse(BaseModel):
    id: int
    course_id: int
    enrolled_at: Optional[datetime] = None
    course: Optional[CourseSummary] = None
