from .category import PRESET_CATEGORIES, Category, get_category
from .pin import EDITABLE_FIELDS, Pin, PinCreateRequest, PinPermissions, PinRecord, PinStatus, PinUpdateRequest
from .user import Caller

__all__ = [
    "Caller",
    "Category",
    "EDITABLE_FIELDS",
    "PRESET_CATEGORIES",
    "Pin",
    "PinCreateRequest",
    "PinPermissions",
    "PinRecord",
    "PinStatus",
    "PinUpdateRequest",
    "get_category",
]
