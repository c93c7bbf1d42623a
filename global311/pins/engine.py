"""Pin consensus engine.

Owns the pin lifecycle: creation, community approval/decline voting,
resolution and deletion, and the authorization rules for each. Every
mutating operation re-reads the pin, applies a pure transition from
:mod:`global311.pins.policy` and writes back conditionally on the revision
it read. When another client wrote in between, the operation re-reads and
tries again, up to ``max_write_retries`` attempts.

Status is sticky: it only moves forward (active -> disputed -> resolved,
or active -> resolved) and is never recomputed from vote tallies.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar

from pydantic import ValidationError as SchemaError

from global311.core.config import settings
from global311.core.exceptions import (
    ConcurrentModificationError,
    NotFound,
    PermissionDenied,
    PinServiceError,
    ServiceUnavailable,
    Unauthenticated,
    ValidationError,
)
from global311.models import EDITABLE_FIELDS, Caller, Pin, PinRecord, PinStatus, get_category
from global311.pins import policy
from global311.pins.policy import ConsensusRules
from global311.pins.store import DocumentStore, Record
from global311.utils.audit import audit_log

logger = logging.getLogger(__name__)

T = TypeVar("T")

Transition = Callable[[Pin, Caller], Dict[str, Any]]

ORDERINGS = {
    "created_desc": True,
    "created_asc": False,
}


class PinEngine:
    """Async API over the pin collection with explicit caller identity."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        rules: Optional[ConsensusRules] = None,
        collection: Optional[str] = None,
        max_write_retries: Optional[int] = None,
        allow_anonymous_read: Optional[bool] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.rules = rules or ConsensusRules.from_settings(settings)
        self.collection = collection or settings.PINS_COLLECTION
        self.max_write_retries = settings.MAX_WRITE_RETRIES if max_write_retries is None else max_write_retries
        if self.max_write_retries < 1:
            raise ValueError("max_write_retries must be at least 1")
        self.allow_anonymous_read = (
            settings.ALLOW_ANONYMOUS_READ if allow_anonymous_read is None else allow_anonymous_read
        )
        self._clock = clock

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    @audit_log
    async def add_pin(
        self,
        caller: Optional[Caller],
        latitude: float,
        longitude: float,
        title: str,
        description: str = "",
        category_id: Optional[str] = None,
        category_name: Optional[str] = None,
    ) -> Pin:
        caller = _require_caller(caller)
        latitude = _coordinate("latitude", latitude)
        longitude = _coordinate("longitude", longitude)
        title = _clean_title(title)
        category_id, category_name = _resolve_category(category_id, category_name)

        record = {
            "creator": caller.id,
            "latitude": latitude,
            "longitude": longitude,
            "title": title,
            "description": "" if description is None else description,
            "category_id": category_id,
            "category_name": category_name,
            "created_at": self._clock(),
            "status": PinStatus.ACTIVE.value,
            "approvals": [],
            "declines": [],
            "revision": 0,
        }
        _check_record(record)
        created = await self._call(self.store.create(self.collection, record))
        pin = _decode(created)
        logger.info("Pin %s created by %s", pin.id, caller.id)
        return pin

    @audit_log
    async def approve(self, caller: Optional[Caller], pin_id: str) -> Pin:
        caller = _require_caller(caller)

        def transition(pin: Pin, voter: Caller) -> Dict[str, Any]:
            policy.ensure_can_vote(pin, voter)
            return policy.apply_approval(pin, voter.id)

        return await self._mutate(pin_id, caller, transition)

    @audit_log
    async def decline(self, caller: Optional[Caller], pin_id: str) -> Pin:
        caller = _require_caller(caller)

        def transition(pin: Pin, voter: Caller) -> Dict[str, Any]:
            policy.ensure_can_vote(pin, voter)
            changes = policy.apply_decline(pin, voter.id, self.rules)
            if changes.get("status") == PinStatus.DISPUTED.value:
                logger.info("Pin %s disputed after decline by %s", pin.id, voter.id)
            return changes

        return await self._mutate(pin_id, caller, transition)

    @audit_log
    async def resolve(self, caller: Optional[Caller], pin_id: str) -> Pin:
        caller = _require_caller(caller)

        def transition(pin: Pin, actor: Caller) -> Dict[str, Any]:
            if not policy.may_resolve(pin, actor, self.rules):
                raise PermissionDenied("Insufficient permissions to resolve this pin", details={"pin_id": pin.id})
            return policy.apply_resolution(pin)

        return await self._mutate(pin_id, caller, transition)

    @audit_log
    async def update_pin(self, caller: Optional[Caller], pin_id: str, patch: Mapping[str, Any]) -> Pin:
        caller = _require_caller(caller)
        changes = _validate_patch(patch)

        def transition(pin: Pin, actor: Caller) -> Dict[str, Any]:
            if not policy.may_edit(pin, actor):
                raise PermissionDenied("Only the creator can update pin details", details={"pin_id": pin.id})
            return changes

        return await self._mutate(pin_id, caller, transition)

    @audit_log
    async def delete_pin(self, caller: Optional[Caller], pin_id: str) -> None:
        caller = _require_caller(caller)
        pin = await self._fetch(pin_id)
        if not policy.may_delete(pin, caller, self.rules):
            raise PermissionDenied("Insufficient permissions to delete this pin", details={"pin_id": pin_id})
        await self._call(self.store.delete(self.collection, pin_id))
        logger.info("Pin %s deleted by %s", pin_id, caller.id)

    # ------------------------------------------------------------------
    # Reads and permission queries
    # ------------------------------------------------------------------

    async def get_pin(self, caller: Optional[Caller], pin_id: str) -> Pin:
        self._require_reader(caller)
        return await self._fetch(pin_id)

    async def list_pins(
        self,
        caller: Optional[Caller],
        *,
        order: str = "created_desc",
        limit: Optional[int] = None,
        category_id: Optional[str] = None,
        creator: Optional[str] = None,
    ) -> List[Pin]:
        self._require_reader(caller)
        if order not in ORDERINGS:
            raise ValidationError(f"Unsupported ordering '{order}'", details={"allowed": sorted(ORDERINGS)})
        limit = settings.DEFAULT_LIST_LIMIT if limit is None else limit
        if limit < 1 or limit > settings.MAX_LIST_LIMIT:
            raise ValidationError(f"limit must be between 1 and {settings.MAX_LIST_LIMIT}")

        filters: Dict[str, Any] = {}
        if category_id is not None:
            filters["category_id"] = category_id
        if creator is not None:
            filters["creator"] = creator

        records = await self._call(
            self.store.list(
                self.collection,
                order_by="created_at",
                descending=ORDERINGS[order],
                limit=limit,
                filters=filters,
            )
        )
        return [_decode(record) for record in records]

    async def can_edit(self, caller: Optional[Caller], pin_id: str) -> bool:
        pin = await self._peek(caller, pin_id)
        return pin is not None and policy.may_edit(pin, caller)

    async def can_delete(self, caller: Optional[Caller], pin_id: str) -> bool:
        pin = await self._peek(caller, pin_id)
        return pin is not None and policy.may_delete(pin, caller, self.rules)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_reader(self, caller: Optional[Caller]) -> None:
        if caller is None and not self.allow_anonymous_read:
            raise Unauthenticated("Authentication required")

    async def _peek(self, caller: Optional[Caller], pin_id: str) -> Optional[Pin]:
        if caller is None:
            return None
        try:
            return await self._fetch(pin_id)
        except NotFound:
            return None

    async def _fetch(self, pin_id: str) -> Pin:
        record = await self._call(self.store.get(self.collection, pin_id))
        return _decode(record)

    async def _mutate(self, pin_id: str, caller: Caller, transition: Transition) -> Pin:
        """Read-modify-write ``pin_id`` with a revision-checked update.

        An empty change set is a no-op and returns the freshly read pin.
        """

        for attempt in range(1, self.max_write_retries + 1):
            pin = await self._fetch(pin_id)
            changes = transition(pin, caller)
            if not changes:
                return pin
            _check_record({**pin.model_dump(exclude={"id"}), **changes})
            try:
                updated = await self._call(
                    self.store.update(self.collection, pin_id, changes, expected_revision=pin.revision)
                )
            except ConcurrentModificationError:
                logger.warning(
                    "Write conflict on pin %s (attempt %d/%d)", pin_id, attempt, self.max_write_retries
                )
                continue
            return _decode(updated)

        raise ConcurrentModificationError(
            f"Pin {pin_id} kept changing; gave up after {self.max_write_retries} attempts",
            details={"pin_id": pin_id},
        )

    async def _call(self, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except PinServiceError:
            raise
        except Exception as exc:
            logger.exception("Document store call failed")
            raise ServiceUnavailable("Document store unavailable") from exc


def _require_caller(caller: Optional[Caller]) -> Caller:
    if caller is None:
        raise Unauthenticated("Authentication required")
    return caller


def _coordinate(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number", details={name: value})
    return float(value)


def _clean_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title must not be empty")
    return title.strip()


def _resolve_category(category_id: Optional[str], category_name: Optional[str]):
    """Return the (id, name) pair to store; the name always comes from the taxonomy."""

    if category_id is None:
        if category_name is not None:
            raise ValidationError("category_name requires a category_id")
        return None, None
    category = get_category(category_id)
    if category is None:
        raise ValidationError(f"Unknown category '{category_id}'")
    if category_name is not None and category_name != category.name:
        raise ValidationError(
            f"Category '{category_id}' is named '{category.name}'",
            details={"category_name": category_name},
        )
    return category.id, category.name


def _validate_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    forbidden = sorted(set(patch) - EDITABLE_FIELDS)
    if forbidden:
        raise ValidationError("Fields cannot be updated directly", details={"fields": forbidden})

    changes = dict(patch)
    if "title" in changes:
        changes["title"] = _clean_title(changes["title"])
    if "description" in changes and changes["description"] is None:
        changes["description"] = ""
    if "category_id" in changes:
        changes["category_id"], changes["category_name"] = _resolve_category(
            changes["category_id"], changes.get("category_name")
        )
    elif "category_name" in changes:
        raise ValidationError("category_name can only change together with category_id")
    if not changes:
        raise ValidationError("Nothing to update")
    return changes


def _check_record(record: Mapping[str, Any]) -> None:
    """Reject a record before it is written if it would not read back as a pin."""

    try:
        PinRecord.model_validate(record)
    except SchemaError as exc:
        fields = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
        raise ValidationError("Invalid pin fields", details={"fields": fields}) from exc


def _decode(record: Record) -> Pin:
    try:
        return Pin.model_validate(record)
    except SchemaError as exc:
        logger.error("Malformed pin record %s: %s", record.get("id"), exc)
        raise ValidationError("Stored pin record is malformed", details={"pin_id": record.get("id")}) from exc


__all__ = ["PinEngine"]
