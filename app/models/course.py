import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class CourseAccessLevel(str, enum.Enum):
    """Minimum tier category required to view a course"""
    PUBLIC = "public"
    BASIC = "basic"
    PRO = "pro"


class MaterialType(str, enum.Enum):
    VIDEO = "video"
    IMAGE = "image"
    TEXT = "text"
    BUTTON = "button"


class Course(Base):
    """Course in the catalog; ordered globally by order_index"""
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(String(1000), nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)
    access_level = Column(Enum(CourseAccessLevel), nullable=False, default=CourseAccessLevel.PUBLIC)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    modules = relationship(
        "Module",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Module.order_index",
    )


class Module(Base):
    """Module within a course; ordered per course"""
    __tablename__ = "modules"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    course = relationship("Course", back_populates="modules")
    materials = relationship(
        "Material",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="Material.order_index",
    )


class Material(Base):
    """Learning material within a module; ordered per module"""
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    module_id = Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(MaterialType), nullable=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)  # Rich text (HTML) for text materials
    media_url = Column(String(1000), nullable=True)
    button_text = Column(String(255), nullable=True)
    button_url = Column(String(1000), nullable=True)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    module = relationship("Module", back_populates="materials")
