from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class Category(BaseModel):
    id: str
    name: str
    icon: str


PRESET_CATEGORIES: List[Category] = [
    Category(id="pot", name="Pothole", icon="🕳️"),
    Category(id="const", name="Construction", icon="🚧"),
    Category(id="flood", name="Flooding", icon="💧"),
    Category(id="acc", name="Accident Prone Area", icon="⚠️"),
    Category(id="road", name="Road Closure", icon="🚫"),
    Category(id="light", name="Broken Street Light", icon="💡"),
    Category(id="sign", name="Missing/Damaged Sign", icon="🪧"),
    Category(id="debris", name="Debris/Fallen Tree", icon="🌳"),
    Category(id="park", name="Parking Issue", icon="🅿️"),
    Category(id="other", name="Other", icon="❓"),
]

_BY_ID: Dict[str, Category] = {category.id: category for category in PRESET_CATEGORIES}


def get_category(category_id: str) -> Optional[Category]:
    return _BY_ID.get(category_id)
