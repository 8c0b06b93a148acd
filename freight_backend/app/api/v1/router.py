"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from freight_backend.app.api.v1.endpoints import (
    shipments, tracking, bulk_shipments, admin_pricing, restricted_goods, admin_audit
)

router = APIRouter()

# Solo shipment lifecycle
router.include_router(shipments.router)

# Public tracking
router.include_router(tracking.router)

# Bulk shipments
router.include_router(bulk_shipments.router)

# Admin - pricing and restricted goods
router.include_router(admin_pricing.router)
router.include_router(restricted_goods.router)

# Admin - audit trail
router.include_router(admin_audit.router)
