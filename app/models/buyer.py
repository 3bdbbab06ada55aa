"""
Buyers: people who purchased a product and therefore get member access.

One row per email. The email is always stored normalized (trimmed, lowercase)
and is the only identity key; the webhook upserts on it.
"""
import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func

from .base import Base


class AccessType(str, enum.Enum):
    """Buyer access tier. ebook and mindcare are flat tiers below basic."""
    BASIC = "basic"
    PRO = "pro"
    EBOOK = "ebook"
    MINDCARE = "mindcare"


class Buyer(Base):
    __tablename__ = "buyers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    product_title = Column(String(500), nullable=False)
    access_type = Column(Enum(AccessType), nullable=False, default=AccessType.BASIC)
    amount = Column(String(100), nullable=True)  # display string, e.g. "Rp 199.000"
    ref_id = Column(String(255), nullable=True)
    purchased_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
