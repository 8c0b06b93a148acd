"""
Admin Audit API Endpoints.

Read-only view of pricing, payment, deletion and migration actions.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from freight_backend.app.db.session import get_db
from freight_backend.app.models.enums import UserRole
from freight_backend.app.schemas.audit import AuditLogResponse, AuditTrailResponse
from freight_backend.app.core.guards import require_role
from freight_backend.app.services.audit import get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin - Audit"])


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    entity_type: Optional[str] = Query(None, description="Filter by entity type, e.g. pricing_rule"),
    entity_id: Optional[int] = Query(None, description="Filter by entity ID"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=1000, description="Max results"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Most recent audit entries first (admin-only)."""
    logs = await get_audit_trail(
        db=db,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
