"""
Status catalog and transition rules.
"""

import pytest

from freight_backend.app.core.exceptions import StructuralTransitionError
from freight_backend.app.domain.shipment_status.catalog import (
    AIR_FLOW, SEA_FLOW, COMMON_FLOW, EXCEPTION_STATUSES,
    flow_for, initial_status_for, is_exception,
)
from freight_backend.app.domain.shipment_status.transitions import can_transition, assert_transition
from freight_backend.app.models.shipment_enums import ShipmentStatus as S, TransportMode

AIR = TransportMode.AIR
SEA = TransportMode.SEA


def test_initial_status_is_preorder_for_every_mode():
    assert initial_status_for(AIR) == S.PREORDER_SUBMITTED
    assert initial_status_for(SEA) == S.PREORDER_SUBMITTED
    assert initial_status_for(None) == S.PREORDER_SUBMITTED


def test_flows_share_prefix_and_destination():
    assert AIR_FLOW[:4] == COMMON_FLOW
    assert SEA_FLOW[:4] == COMMON_FLOW
    assert AIR_FLOW[-4:] == SEA_FLOW[-4:]
    assert AIR_FLOW[-1] == S.PICKED_UP_COMPLETED
    assert len(AIR_FLOW) == len(SEA_FLOW) == 13


def test_flow_without_mode_is_common_prefix():
    assert flow_for(None) == COMMON_FLOW


def test_every_status_is_in_a_flow_or_exception_set():
    covered = set(AIR_FLOW) | set(SEA_FLOW) | EXCEPTION_STATUSES
    assert covered == set(S)


def test_exception_membership():
    assert is_exception(S.ON_HOLD)
    assert is_exception(S.RESTRICTED_ITEM_OVERRIDE_APPROVED)
    assert not is_exception(S.READY_FOR_PICKUP)
    assert not is_exception(None)


@pytest.mark.parametrize("mode,flow", [(AIR, AIR_FLOW), (SEA, SEA_FLOW)])
def test_each_step_of_flow_is_allowed(mode, flow):
    for current, nxt in zip(flow, flow[1:]):
        assert can_transition(mode, current, nxt)


def test_sea_leg_steps():
    assert can_transition(SEA, S.AT_ORIGIN_PORT, S.LOADED_ON_VESSEL)
    assert not can_transition(SEA, S.AT_ORIGIN_PORT, S.VESSEL_DEPARTED)


def test_skipping_and_going_backwards_are_rejected():
    assert not can_transition(AIR, S.PREORDER_SUBMITTED, S.WAREHOUSE_RECEIVED)
    assert not can_transition(AIR, S.FLIGHT_DEPARTED, S.BOARDED_ON_FLIGHT)
    assert not can_transition(AIR, S.READY_FOR_PICKUP, S.READY_FOR_PICKUP)


def test_wrong_mode_leg_is_rejected():
    assert not can_transition(AIR, S.WAREHOUSE_VERIFIED_PRICED, S.DISPATCHED_TO_ORIGIN_PORT)
    assert not can_transition(SEA, S.WAREHOUSE_VERIFIED_PRICED, S.DISPATCHED_TO_ORIGIN_AIRPORT)


def test_no_current_status_only_allows_first_status():
    assert can_transition(AIR, None, S.PREORDER_SUBMITTED)
    assert not can_transition(AIR, None, S.AWAITING_WAREHOUSE_RECEIPT)


def test_exception_targets_allowed_from_anywhere():
    for mode in (AIR, SEA, None):
        for current in list(AIR_FLOW) + [None]:
            for target in EXCEPTION_STATUSES:
                assert can_transition(mode, current, target)


def test_recovery_from_exception_status_is_permissive():
    assert can_transition(AIR, S.ON_HOLD, S.FLIGHT_DEPARTED)
    assert can_transition(SEA, S.RESTRICTED_ITEM_OVERRIDE_APPROVED, S.WAREHOUSE_VERIFIED_PRICED)


def test_unknown_mode_cannot_leave_common_prefix():
    assert can_transition(None, S.WAREHOUSE_RECEIVED, S.WAREHOUSE_VERIFIED_PRICED)
    assert not can_transition(None, S.WAREHOUSE_VERIFIED_PRICED, S.DISPATCHED_TO_ORIGIN_AIRPORT)


def test_assert_transition_raises_with_details():
    with pytest.raises(StructuralTransitionError) as exc_info:
        assert_transition(AIR, S.AT_ORIGIN_AIRPORT, S.FLIGHT_DEPARTED)

    err = exc_info.value
    assert err.status_code == 409
    assert err.error_code == "ERR_STATUS_001"
    assert err.details == {
        "transport_mode": "air",
        "current_status": "AT_ORIGIN_AIRPORT",
        "requested_status": "FLIGHT_DEPARTED",
    }


def test_assert_transition_passes_silently_when_legal():
    assert assert_transition(AIR, S.AT_ORIGIN_AIRPORT, S.BOARDED_ON_FLIGHT) is None
