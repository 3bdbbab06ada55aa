# Database models
from .base import Base
from .user import User, UserRole
from .buyer import Buyer, AccessType
from .course import Course, Module, Material, CourseAccessLevel, MaterialType
from .homepage import HomepageSection, HomepageElement, BackgroundType, ElementType
from .announcement import Announcement, AnnouncementRead
from .enrollment import Enrollment
from .event import Event, EventStatus

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Buyer",
    "AccessType",
    "Course",
    "Module",
    "Material",
    "CourseAccessLevel",
    "MaterialType",
    "HomepageSection",
    "HomepageElement",
    "BackgroundType",
    "ElementType",
    "Announcement",
    "AnnouncementRead",
    "Enrollment",
    "Event",
    "EventStatus",
]
