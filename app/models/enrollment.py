from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class Enrollment(Base):
    """A member's "my courses" entry, keyed by buyer email"""
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("buyer_email", "course_id", name="uq_enrollments_email_course"),
    )

    id = Column(Integer, primary_key=True, index=True)
    buyer_email = Column(String(255), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    enrolled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    course = relationship("Course")
