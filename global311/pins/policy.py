"""Pure consensus rules for pins.

Nothing in this module touches the document store. The engine fetches a pin,
asks these functions what the caller may do and which fields change, and
persists the result. ``can_edit``/``can_delete`` and the mutating operations
share the same predicates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from global311.core.exceptions import SelfVoteError
from global311.models import Caller, Pin, PinStatus


@dataclass(frozen=True)
class ConsensusRules:
    quorum: int = 2
    dispute_min_declines: int = 3

    @classmethod
    def from_settings(cls, settings: Any) -> "ConsensusRules":
        return cls(quorum=settings.PIN_QUORUM, dispute_min_declines=settings.DISPUTE_MIN_DECLINES)


def is_creator(pin: Pin, caller: Optional[Caller]) -> bool:
    return caller is not None and caller.id == pin.creator


def has_quorum(pin: Pin, rules: ConsensusRules) -> bool:
    return pin.approval_count >= rules.quorum


def may_resolve(pin: Pin, caller: Optional[Caller], rules: ConsensusRules) -> bool:
    """Creator, a quorum of approvals, or an administrator may resolve."""

    if caller is None:
        return False
    return is_creator(pin, caller) or has_quorum(pin, rules) or caller.is_admin


def may_delete(pin: Pin, caller: Optional[Caller], rules: ConsensusRules) -> bool:
    return may_resolve(pin, caller, rules)


def may_edit(pin: Pin, caller: Optional[Caller]) -> bool:
    return is_creator(pin, caller)


def ensure_can_vote(pin: Pin, caller: Caller) -> None:
    if is_creator(pin, caller):
        raise SelfVoteError("Cannot vote on your own pin", details={"pin_id": pin.id})


def apply_approval(pin: Pin, voter_id: str) -> Dict[str, Any]:
    """Return the fields to write for an approval, or {} when already approved."""

    if voter_id in pin.approvals:
        return {}
    return {
        "approvals": [*pin.approvals, voter_id],
        "declines": [user_id for user_id in pin.declines if user_id != voter_id],
    }


def apply_decline(pin: Pin, voter_id: str, rules: ConsensusRules) -> Dict[str, Any]:
    """Return the fields to write for a decline, or {} when already declined.

    An active pin becomes disputed once declines outnumber approvals and reach
    ``rules.dispute_min_declines``. Status never moves backwards.
    """

    if voter_id in pin.declines:
        return {}
    approvals = [user_id for user_id in pin.approvals if user_id != voter_id]
    declines = [*pin.declines, voter_id]
    changes: Dict[str, Any] = {"approvals": approvals, "declines": declines}
    if is_disputed(len(approvals), len(declines), rules) and pin.status == PinStatus.ACTIVE:
        changes["status"] = PinStatus.DISPUTED.value
    return changes


def is_disputed(approvals: int, declines: int, rules: ConsensusRules) -> bool:
    return declines > approvals and declines >= rules.dispute_min_declines


def apply_resolution(pin: Pin) -> Dict[str, Any]:
    if pin.status == PinStatus.RESOLVED:
        return {}
    return {"status": PinStatus.RESOLVED.value}


__all__ = [
    "ConsensusRules",
    "apply_approval",
    "apply_decline",
    "apply_resolution",
    "ensure_can_vote",
    "has_quorum",
    "is_creator",
    "is_disputed",
    "may_delete",
    "may_edit",
    "may_resolve",
]
