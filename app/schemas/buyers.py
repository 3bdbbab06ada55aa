from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional, List

from app.models.buyer import AccessType


class BuyerBase(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    product_title: str = Field(..., min_length=1, max_length=500)
    access_type: AccessType = AccessType.BASIC
    amount: Optional[str] = None
    ref_id: Optional[str] = None
    purchased_at: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("name", "product_title")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class BuyerCreate(BuyerBase):
    """Admin entry: the tier is chosen explicitly, never derived from the product"""


class BuyerUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    product_title: Optional[str] = Field(None, min_length=1, max_length=500)
    access_type: Optional[AccessType] = None
    amount: Optional[str] = None
    ref_id: Optional[str] = None
    purchased_at: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else v


class BuyerResponse(BaseModel):
    id: int
    email: str
    name: str
    product_title: str
    access_type: AccessType
    amount: Optional[str] = None
    ref_id: Optional[str] = None
    purchased_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BuyerListResponse(BaseModel):
    items: List[BuyerResponse]
    total: int


class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted: int


class CSVRowError(BaseModel):
    row: int
    error: str


class CSVImportResponse(BaseModel):
    dry_run: bool
    valid_rows: int
    inserted: int = 0
    updated: int = 0
    errors: List[CSVRowError] = []


class CSVImportRequest(BaseModel):
    csv_data: str
    dry_run: bool = False
