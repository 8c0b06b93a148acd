"""
Audit logging service for admin actions.

Provides centralized recording of pricing, payment and migration actions.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from freight_backend.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    PRICING_RULE_CREATED = "PRICING_RULE_CREATED"
    PRICING_RULE_DEACTIVATED = "PRICING_RULE_DEACTIVATED"
    PRICING_OVERRIDE_CREATED = "PRICING_OVERRIDE_CREATED"
    RESTRICTED_GOOD_CREATED = "RESTRICTED_GOOD_CREATED"
    CHARGE_MANUALLY_ADJUSTED = "CHARGE_MANUALLY_ADJUSTED"
    PAYMENT_STATUS_CHANGED = "PAYMENT_STATUS_CHANGED"
    STATUS_BACKFILL_RUN = "STATUS_BACKFILL_RUN"
    SHIPMENT_DELETED = "SHIPMENT_DELETED"
    BULK_SHIPMENT_DELETED = "BULK_SHIPMENT_DELETED"


def add_audit_entry(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Stage an audit entry in the caller's transaction."""
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
    )
    db.add(audit_log)
    return audit_log


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Log an admin event to the audit log and commit it.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        entity_type: Kind of record acted upon (e.g. "pricing_rule")
        entity_id: ID of the record acted upon
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = add_audit_entry(db, action, actor_id, entity_type, entity_id, metadata)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
