"""
Seed script: a starter homepage (hero + course call-to-action).

Usage:
    python seed_homepage.py

Idempotent: sections are matched by name and skipped when present.
"""
from app.database import SessionLocal
from app.models.homepage import BackgroundType, ElementType, HomepageElement, HomepageSection
from app.schemas.homepage import ElementCreate, content_to_json
from app.services.reorder import next_order_index

SECTIONS = [
    {
        "name": "Hero",
        "background": BackgroundType.GRADIENT,
        "elements": [
            {"type": "heading", "content": {"level": 1, "text": "Learn at your own pace", "gradient": True, "centered": True}},
            {"type": "paragraph", "content": {"text": "Courses for every level, unlocked by your purchase.", "centered": True}},
            {"type": "button", "content": {"text": "Member login", "link": "/member/login", "size": "lg"}},
        ],
    },
    {
        "name": "Courses",
        "title": "What you get",
        "background": BackgroundType.MUTED,
        "elements": [
            {
                "type": "card_group",
                "content": {
                    "layout": "3-col",
                    "items": [
                        {"title": "Basic", "description": "All core courses"},
                        {"title": "Pro", "description": "Everything, including advanced tracks", "badge": "Best value"},
                        {"title": "Free", "description": "Public lessons for everyone"},
                    ],
                },
            },
        ],
    },
]

db = SessionLocal()
try:
    for s in SECTIONS:
        if db.query(HomepageSection).filter(HomepageSection.name == s["name"]).first():
            print(f"  Exists:  {s['name']}")
            continue

        section = HomepageSection(
            name=s["name"],
            title=s.get("title"),
            background=s["background"],
            order_index=next_order_index(db, HomepageSection),
        )
        db.add(section)
        db.flush()
        print(f"  Created: {s['name']}")

        for position, raw in enumerate(s["elements"]):
            element = ElementCreate.model_validate(raw)
            db.add(HomepageElement(
                section_id=section.id,
                type=ElementType(element.type),
                content=content_to_json(element.content),
                order_index=position,
            ))
            print(f"    + {element.type.value}")

    db.commit()
    print("\nDone.")
finally:
    db.close()
