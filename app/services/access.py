"""
Access tier resolution.

Maps a purchased product to a buyer access tier and decides whether a tier may
view a resource that requires a given access level. Pure functions over the
closed AccessType / CourseAccessLevel enumerations.

Hierarchy: pro (3) > basic (2) > ebook = mindcare (1). ebook and mindcare are
one-off products ranked below basic, so their buyers only see public content.
"""
import logging
from typing import Optional, Union

from app.exceptions import ConfigurationError
from app.models.buyer import AccessType
from app.models.course import CourseAccessLevel

logger = logging.getLogger(__name__)

# Keyword groups checked in order; first match wins.
PRO_KEYWORDS = ("pro", "private", "upgrade")
EBOOK_KEYWORDS = ("ebook generator",)
MINDCARE_KEYWORDS = ("mind care", "mindcare")

TIER_RANK = {
    AccessType.PRO: 3,
    AccessType.BASIC: 2,
    AccessType.EBOOK: 1,
    AccessType.MINDCARE: 1,
}

REQUIRED_RANK = {
    CourseAccessLevel.PUBLIC: 0,
    CourseAccessLevel.BASIC: 2,
    CourseAccessLevel.PRO: 3,
}


def classify_product(product_title: str) -> AccessType:
    """
    Derive the access tier from a product title (webhook ingestion only).

    Admin entry and CSV import pick the tier explicitly and never call this.
    """
    title = (product_title or "").lower()

    if any(keyword in title for keyword in PRO_KEYWORDS):
        return AccessType.PRO
    if any(keyword in title for keyword in EBOOK_KEYWORDS):
        return AccessType.EBOOK
    if any(keyword in title for keyword in MINDCARE_KEYWORDS):
        return AccessType.MINDCARE
    return AccessType.BASIC


def parse_access_type(value: Union[str, AccessType]) -> AccessType:
    """Deserialize a stored/received tier, failing fast on unknown values"""
    if isinstance(value, AccessType):
        return value
    try:
        return AccessType(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unknown access type: {value!r}")


def parse_access_level(value: Union[str, CourseAccessLevel]) -> CourseAccessLevel:
    """Deserialize a course access level, failing fast on unknown values"""
    if isinstance(value, CourseAccessLevel):
        return value
    try:
        return CourseAccessLevel(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unknown course access level: {value!r}")


def tier_rank(tier: Union[str, AccessType]) -> int:
    return TIER_RANK[parse_access_type(tier)]


def resource_required_rank(level: Union[str, CourseAccessLevel]) -> int:
    return REQUIRED_RANK[parse_access_level(level)]


def can_access(
    tier: Optional[Union[str, AccessType]],
    level: Union[str, CourseAccessLevel],
) -> bool:
    """
    Public resources are always visible, including to anonymous visitors.
    Anything else needs a tier whose rank reaches the level's required rank.
    """
    level = parse_access_level(level)
    if level == CourseAccessLevel.PUBLIC:
        return True
    if tier is None:
        return False
    return tier_rank(tier) >= resource_required_rank(level)


def has_pro_access(tier: Optional[Union[str, AccessType]]) -> bool:
    return tier is not None and parse_access_type(tier) == AccessType.PRO


def has_basic_access(tier: Optional[Union[str, AccessType]]) -> bool:
    return tier is not None and parse_access_type(tier) in (AccessType.BASIC, AccessType.PRO)
