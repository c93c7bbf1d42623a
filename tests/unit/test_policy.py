from datetime import datetime, timezone

import pytest

from global311.core.exceptions import SelfVoteError
from global311.models import Caller, Pin, PinStatus
from global311.pins import policy
from global311.pins.policy import ConsensusRules

RULES = ConsensusRules(quorum=2, dispute_min_declines=3)


def make_pin(**overrides) -> Pin:
    fields = {
        "id": "pin-1",
        "creator": "alice",
        "latitude": 40.0,
        "longitude": -73.0,
        "title": "Pothole on Main St",
        "description": "",
        "created_at": datetime(2024, 4, 1, tzinfo=timezone.utc),
        "status": PinStatus.ACTIVE,
        "approvals": [],
        "declines": [],
        "revision": 0,
    }
    fields.update(overrides)
    return Pin(**fields)


def test_approval_retracts_prior_decline():
    pin = make_pin(declines=["bob", "carol"])

    changes = policy.apply_approval(pin, "bob")

    assert changes == {"approvals": ["bob"], "declines": ["carol"]}


def test_repeat_approval_is_a_no_op():
    pin = make_pin(approvals=["bob"])

    assert policy.apply_approval(pin, "bob") == {}


def test_decline_retracts_prior_approval():
    pin = make_pin(approvals=["bob"])

    changes = policy.apply_decline(pin, "bob", RULES)

    assert changes["approvals"] == []
    assert changes["declines"] == ["bob"]
    assert "status" not in changes


def test_decline_disputes_active_pin_past_margin():
    pin = make_pin(approvals=["erin"], declines=["bob", "carol"])

    changes = policy.apply_decline(pin, "dave", RULES)

    assert changes["status"] == PinStatus.DISPUTED.value


def test_decline_needs_minimum_count_to_dispute():
    pin = make_pin(declines=["bob"])

    changes = policy.apply_decline(pin, "carol", RULES)

    assert "status" not in changes


def test_decline_never_reopens_resolved_pin():
    pin = make_pin(status=PinStatus.RESOLVED, declines=["bob", "carol"])

    changes = policy.apply_decline(pin, "dave", RULES)

    assert "status" not in changes
    assert changes["declines"] == ["bob", "carol", "dave"]


def test_self_vote_rejected():
    pin = make_pin()

    with pytest.raises(SelfVoteError):
        policy.ensure_can_vote(pin, Caller(id="alice"))


@pytest.mark.parametrize(
    "caller, approvals, expected",
    [
        (Caller(id="alice"), [], True),
        (Caller(id="bob"), [], False),
        (Caller(id="bob"), ["carol"], False),
        (Caller(id="bob"), ["carol", "dave"], True),
        (Caller(id="mod", is_admin=True), [], True),
        (None, ["carol", "dave"], False),
    ],
)
def test_resolve_and_delete_permissions(caller, approvals, expected):
    pin = make_pin(approvals=approvals)

    assert policy.may_resolve(pin, caller, RULES) is expected
    assert policy.may_delete(pin, caller, RULES) is expected


def test_only_creator_may_edit():
    pin = make_pin(approvals=["bob", "carol"])

    assert policy.may_edit(pin, Caller(id="alice"))
    assert not policy.may_edit(pin, Caller(id="bob"))
    assert not policy.may_edit(pin, Caller(id="mod", is_admin=True))
    assert not policy.may_edit(pin, None)


def test_resolution_is_idempotent():
    assert policy.apply_resolution(make_pin()) == {"status": "resolved"}
    assert policy.apply_resolution(make_pin(status=PinStatus.RESOLVED)) == {}


def test_tied_declines_do_not_dispute():
    pin = make_pin(approvals=["erin", "frank", "grace"], declines=["bob", "carol"])

    changes = policy.apply_decline(pin, "dave", RULES)

    assert len(changes["declines"]) == 3
    assert "status" not in changes
    assert not policy.is_disputed(3, 3, RULES)
    assert policy.is_disputed(2, 3, RULES)
