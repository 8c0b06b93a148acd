"""
Shipment lifecycle and pricing enumerations.

Values are used verbatim across the API and storage.
"""

import enum


class TransportMode(str, enum.Enum):
    """International leg transport mode."""
    AIR = "air"
    SEA = "sea"


class ShipmentStatus(str, enum.Enum):
    """
    Fine-grained shipment status.

    Status flow (see domain.shipment_status.catalog):
        common prefix → air or sea leg → Lagos office → pickup
        Exception statuses (ON_HOLD, CANCELLED, RESTRICTED_*) are reachable from anywhere
    """
    PREORDER_SUBMITTED = "PREORDER_SUBMITTED"
    AWAITING_WAREHOUSE_RECEIPT = "AWAITING_WAREHOUSE_RECEIPT"
    WAREHOUSE_RECEIVED = "WAREHOUSE_RECEIVED"
    WAREHOUSE_VERIFIED_PRICED = "WAREHOUSE_VERIFIED_PRICED"
    # Air leg
    DISPATCHED_TO_ORIGIN_AIRPORT = "DISPATCHED_TO_ORIGIN_AIRPORT"
    AT_ORIGIN_AIRPORT = "AT_ORIGIN_AIRPORT"
    BOARDED_ON_FLIGHT = "BOARDED_ON_FLIGHT"
    FLIGHT_DEPARTED = "FLIGHT_DEPARTED"
    FLIGHT_LANDED_LAGOS = "FLIGHT_LANDED_LAGOS"
    # Sea leg
    DISPATCHED_TO_ORIGIN_PORT = "DISPATCHED_TO_ORIGIN_PORT"
    AT_ORIGIN_PORT = "AT_ORIGIN_PORT"
    LOADED_ON_VESSEL = "LOADED_ON_VESSEL"
    VESSEL_DEPARTED = "VESSEL_DEPARTED"
    VESSEL_ARRIVED_LAGOS_PORT = "VESSEL_ARRIVED_LAGOS_PORT"
    # Destination
    CUSTOMS_CLEARED_LAGOS = "CUSTOMS_CLEARED_LAGOS"
    IN_TRANSIT_TO_LAGOS_OFFICE = "IN_TRANSIT_TO_LAGOS_OFFICE"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    PICKED_UP_COMPLETED = "PICKED_UP_COMPLETED"
    # Exceptions
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"
    RESTRICTED_ITEM_REJECTED = "RESTRICTED_ITEM_REJECTED"
    RESTRICTED_ITEM_OVERRIDE_APPROVED = "RESTRICTED_ITEM_OVERRIDE_APPROVED"


class LegacyStatus(str, enum.Enum):
    """Coarse status used before the fine-grained model existed."""
    PENDING = "pending"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentCollectionStatus(str, enum.Enum):
    """Whether the money owed for a shipment has been collected."""
    UNPAID = "UNPAID"
    PAYMENT_IN_PROGRESS = "PAYMENT_IN_PROGRESS"
    PAID_IN_FULL = "PAID_IN_FULL"


class PricingSource(str, enum.Enum):
    """Provenance of a shipment charge."""
    DEFAULT_RATE = "DEFAULT_RATE"  # Matched a default pricing rule
    CUSTOMER_OVERRIDE = "CUSTOMER_OVERRIDE"  # Matched a customer-specific override
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"  # Staff replaced the calculated charge
    MIGRATED_UNVERIFIED = "MIGRATED_UNVERIFIED"  # Backfilled row with no trusted charge
