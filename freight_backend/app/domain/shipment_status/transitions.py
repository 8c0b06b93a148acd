"""
Transition Validator.

Decides whether a requested status change is legal. Never mutates state.
"""

import logging
from typing import Optional

from freight_backend.app.core.exceptions import StructuralTransitionError
from freight_backend.app.domain.shipment_status.catalog import flow_for, is_exception
from freight_backend.app.models.shipment_enums import ShipmentStatus, TransportMode

logger = logging.getLogger(__name__)


def can_transition(
    mode: Optional[TransportMode],
    current: Optional[ShipmentStatus],
    next_status: ShipmentStatus,
) -> bool:
    """
    Rules, in order:
    1. Any exception status may be entered from anywhere.
    2. Any status may be entered from an exception status (recovery).
    3. With no current status only the first status of the flow is legal.
    4. Otherwise next must directly follow current in the mode's flow.
    """
    if is_exception(next_status):
        return True
    if is_exception(current):
        return True

    flow = flow_for(mode)
    if next_status not in flow:
        return False

    if current is None:
        return next_status == flow[0]

    if current not in flow:
        return False

    return flow.index(next_status) == flow.index(current) + 1


def assert_transition(
    mode: Optional[TransportMode],
    current: Optional[ShipmentStatus],
    next_status: ShipmentStatus,
) -> None:
    """
    Raises:
        StructuralTransitionError: if the move is not allowed
    """
    if not can_transition(mode, current, next_status):
        logger.info(
            "Rejected status transition %s -> %s (mode=%s)",
            current.value if current else None,
            next_status.value,
            mode.value if mode else None,
        )
        raise StructuralTransitionError(
            mode=mode.value if mode else None,
            current_status=current.value if current else None,
            next_status=next_status.value,
        )
