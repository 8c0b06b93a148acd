"""
Status Mapper.

Conversion between the coarse legacy status and the fine-grained status
model, plus transport-mode normalization.
"""

from typing import Optional, Union

from freight_backend.app.core.exceptions import MissingModeError
from freight_backend.app.models.shipment_enums import LegacyStatus, ShipmentStatus, TransportMode

# Legacy values whose fine-grained equivalent depends on the transport mode
MODE_DEPENDENT_LEGACY = frozenset({LegacyStatus.PICKED_UP, LegacyStatus.IN_TRANSIT})


def normalize_transport_mode(raw: Union[TransportMode, str, None]) -> Optional[TransportMode]:
    """
    Accepts "air", "sea" and the older "ocean" spelling, any case.
    Anything else (including "road") has no international leg mode.
    """
    if raw is None:
        return None
    if isinstance(raw, TransportMode):
        return raw

    value = raw.strip().lower()
    if value == "air":
        return TransportMode.AIR
    if value in ("sea", "ocean"):
        return TransportMode.SEA
    return None


def legacy_to_status(
    legacy: LegacyStatus,
    mode: Optional[TransportMode],
) -> Optional[ShipmentStatus]:
    """
    Map a legacy status to the fine-grained model.

    Returns None when the value depends on a transport mode that is unknown.
    """
    if legacy == LegacyStatus.PENDING:
        return ShipmentStatus.WAREHOUSE_VERIFIED_PRICED

    if legacy == LegacyStatus.PICKED_UP:
        if mode is None:
            return None
        if mode == TransportMode.AIR:
            return ShipmentStatus.DISPATCHED_TO_ORIGIN_AIRPORT
        return ShipmentStatus.DISPATCHED_TO_ORIGIN_PORT

    if legacy == LegacyStatus.IN_TRANSIT:
        if mode is None:
            return None
        if mode == TransportMode.AIR:
            return ShipmentStatus.FLIGHT_DEPARTED
        return ShipmentStatus.VESSEL_DEPARTED

    if legacy == LegacyStatus.OUT_FOR_DELIVERY:
        return ShipmentStatus.IN_TRANSIT_TO_LAGOS_OFFICE

    if legacy == LegacyStatus.DELIVERED:
        return ShipmentStatus.PICKED_UP_COMPLETED

    if legacy in (LegacyStatus.CANCELLED, LegacyStatus.RETURNED):
        return ShipmentStatus.CANCELLED

    return None


def legacy_to_status_strict(legacy: LegacyStatus, mode: Optional[TransportMode]) -> ShipmentStatus:
    """Same as legacy_to_status but raises instead of returning None."""
    status = legacy_to_status(legacy, mode)
    if status is None:
        raise MissingModeError(
            message=f"Legacy status '{legacy.value}' needs a transport mode to be mapped",
            details={"legacy_status": legacy.value},
        )
    return status


def status_to_legacy(status: ShipmentStatus) -> LegacyStatus:
    """
    Collapse a fine-grained status into the legacy vocabulary.

    Total over ShipmentStatus and independent of mode; information is lost.
    """
    match status:
        case (
            ShipmentStatus.PREORDER_SUBMITTED
            | ShipmentStatus.AWAITING_WAREHOUSE_RECEIPT
            | ShipmentStatus.WAREHOUSE_RECEIVED
            | ShipmentStatus.WAREHOUSE_VERIFIED_PRICED
            | ShipmentStatus.ON_HOLD
            | ShipmentStatus.RESTRICTED_ITEM_OVERRIDE_APPROVED
        ):
            return LegacyStatus.PENDING
        case (
            ShipmentStatus.DISPATCHED_TO_ORIGIN_AIRPORT
            | ShipmentStatus.AT_ORIGIN_AIRPORT
            | ShipmentStatus.BOARDED_ON_FLIGHT
            | ShipmentStatus.DISPATCHED_TO_ORIGIN_PORT
            | ShipmentStatus.AT_ORIGIN_PORT
            | ShipmentStatus.LOADED_ON_VESSEL
        ):
            return LegacyStatus.PICKED_UP
        case (
            ShipmentStatus.FLIGHT_DEPARTED
            | ShipmentStatus.FLIGHT_LANDED_LAGOS
            | ShipmentStatus.VESSEL_DEPARTED
            | ShipmentStatus.VESSEL_ARRIVED_LAGOS_PORT
            | ShipmentStatus.CUSTOMS_CLEARED_LAGOS
        ):
            return LegacyStatus.IN_TRANSIT
        case ShipmentStatus.IN_TRANSIT_TO_LAGOS_OFFICE | ShipmentStatus.READY_FOR_PICKUP:
            return LegacyStatus.OUT_FOR_DELIVERY
        case ShipmentStatus.PICKED_UP_COMPLETED:
            return LegacyStatus.DELIVERED
        case ShipmentStatus.CANCELLED:
            return LegacyStatus.CANCELLED
        case ShipmentStatus.RESTRICTED_ITEM_REJECTED:
            return LegacyStatus.RETURNED
    raise ValueError(f"Unhandled shipment status: {status!r}")
