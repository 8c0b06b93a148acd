"""
Legacy status mapping and transport mode normalization.
"""

import pytest

from freight_backend.app.core.exceptions import MissingModeError
from freight_backend.app.domain.shipment_status.mapping import (
    legacy_to_status, legacy_to_status_strict, status_to_legacy, normalize_transport_mode,
)
from freight_backend.app.models.shipment_enums import (
    LegacyStatus as L, ShipmentStatus as S, TransportMode,
)

AIR = TransportMode.AIR
SEA = TransportMode.SEA


@pytest.mark.parametrize("legacy,mode,expected", [
    (L.PENDING, None, S.WAREHOUSE_VERIFIED_PRICED),
    (L.PICKED_UP, AIR, S.DISPATCHED_TO_ORIGIN_AIRPORT),
    (L.PICKED_UP, SEA, S.DISPATCHED_TO_ORIGIN_PORT),
    (L.IN_TRANSIT, AIR, S.FLIGHT_DEPARTED),
    (L.IN_TRANSIT, SEA, S.VESSEL_DEPARTED),
    (L.OUT_FOR_DELIVERY, None, S.IN_TRANSIT_TO_LAGOS_OFFICE),
    (L.DELIVERED, SEA, S.PICKED_UP_COMPLETED),
    (L.CANCELLED, None, S.CANCELLED),
    (L.RETURNED, AIR, S.CANCELLED),
])
def test_legacy_to_status(legacy, mode, expected):
    assert legacy_to_status(legacy, mode) == expected


@pytest.mark.parametrize("legacy", [L.PICKED_UP, L.IN_TRANSIT])
def test_mode_dependent_legacy_without_mode_is_unmappable(legacy):
    assert legacy_to_status(legacy, None) is None


def test_strict_mapping_raises_missing_mode():
    with pytest.raises(MissingModeError) as exc_info:
        legacy_to_status_strict(L.IN_TRANSIT, None)

    assert exc_info.value.error_code == "ERR_STATUS_002"
    assert exc_info.value.details == {"legacy_status": "in_transit"}
    assert legacy_to_status_strict(L.IN_TRANSIT, SEA) == S.VESSEL_DEPARTED


def test_status_to_legacy_is_total():
    for status in S:
        assert isinstance(status_to_legacy(status), L)


@pytest.mark.parametrize("status,expected", [
    (S.PREORDER_SUBMITTED, L.PENDING),
    (S.WAREHOUSE_VERIFIED_PRICED, L.PENDING),
    (S.ON_HOLD, L.PENDING),
    (S.RESTRICTED_ITEM_OVERRIDE_APPROVED, L.PENDING),
    (S.AT_ORIGIN_AIRPORT, L.PICKED_UP),
    (S.LOADED_ON_VESSEL, L.PICKED_UP),
    (S.FLIGHT_LANDED_LAGOS, L.IN_TRANSIT),
    (S.CUSTOMS_CLEARED_LAGOS, L.IN_TRANSIT),
    (S.READY_FOR_PICKUP, L.OUT_FOR_DELIVERY),
    (S.PICKED_UP_COMPLETED, L.DELIVERED),
    (S.CANCELLED, L.CANCELLED),
    (S.RESTRICTED_ITEM_REJECTED, L.RETURNED),
])
def test_status_to_legacy_groups(status, expected):
    assert status_to_legacy(status) == expected


def test_legacy_mapping_lands_on_same_legacy_group():
    # Mapping forward then back never changes the coarse meaning, except
    # "returned", which the fine model folds into cancellation.
    for legacy in L:
        for mode in (AIR, SEA):
            status = legacy_to_status(legacy, mode)
            expected = L.CANCELLED if legacy == L.RETURNED else legacy
            assert status_to_legacy(status) == expected


@pytest.mark.parametrize("raw,expected", [
    ("air", AIR),
    ("AIR", AIR),
    (" sea ", SEA),
    ("ocean", SEA),
    ("road", None),
    ("", None),
    (None, None),
    (TransportMode.SEA, SEA),
])
def test_normalize_transport_mode(raw, expected):
    assert normalize_transport_mode(raw) == expected
