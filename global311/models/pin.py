from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PinStatus(str, Enum):
    ACTIVE = "active"
    DISPUTED = "disputed"
    RESOLVED = "resolved"


class PinRecord(BaseModel):
    """The stored fields of a pin, before the store assigns an id.

    New records and patched pins are checked against this schema before they
    are written, so the store never holds a record ``Pin`` cannot read back.
    """

    model_config = ConfigDict(frozen=True)

    creator: str
    latitude: float
    longitude: float
    title: str
    description: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    created_at: datetime
    status: PinStatus
    approvals: List[str]
    declines: List[str]
    revision: int = Field(ge=0)


class Pin(PinRecord):
    """A geotagged civic issue report as persisted in the document store.

    Records coming back from the store are validated against this schema;
    a record missing a required field is rejected rather than patched up.
    """

    id: str

    @property
    def approval_count(self) -> int:
        return len(self.approvals)

    @property
    def decline_count(self) -> int:
        return len(self.declines)


# Fields callers may change through update_pin; everything else is engine-owned.
EDITABLE_FIELDS = frozenset({"title", "description", "category_id", "category_name"})


class PinCreateRequest(BaseModel):
    latitude: float
    longitude: float
    title: str
    description: str = ""
    category_id: Optional[str] = None
    category_name: Optional[str] = None

    @field_validator("latitude", "longitude")
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("Coordinates must be finite numbers")
        return value


class PinUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None


class PinPermissions(BaseModel):
    pin_id: str
    can_edit: bool
    can_delete: bool
