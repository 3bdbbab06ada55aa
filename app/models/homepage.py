import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class BackgroundType(str, enum.Enum):
    DEFAULT = "default"
    MUTED = "muted"
    GRADIENT = "gradient"


class ElementType(str, enum.Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    BUTTON = "button"
    CARD = "card"
    VIDEO = "video"
    CARD_GROUP = "card_group"


class HomepageSection(Base):
    """Block of the public homepage; ordered globally"""
    __tablename__ = "homepage_sections"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    title = Column(String(500), nullable=True)
    subtitle = Column(String(1000), nullable=True)
    background = Column(Enum(BackgroundType), nullable=False, default=BackgroundType.DEFAULT)
    order_index = Column(Integer, default=0, nullable=False)
    is_visible = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    elements = relationship(
        "HomepageElement",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="HomepageElement.order_index",
    )


class HomepageElement(Base):
    """Typed content element inside a section. content shape depends on type."""
    __tablename__ = "homepage_elements"

    id = Column(Integer, primary_key=True, index=True)
    section_id = Column(
        Integer, ForeignKey("homepage_sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(Enum(ElementType), nullable=False)
    content = Column(JSON, nullable=False, default=dict)
    order_index = Column(Integer, default=0, nullable=False)
    is_visible = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    section = relationship("HomepageSection", back_populates="elements")
