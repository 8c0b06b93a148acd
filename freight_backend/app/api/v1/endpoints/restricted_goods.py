"""
Restricted Goods API Endpoints (Admin).
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from freight_backend.app.db.session import get_db
from freight_backend.app.models.enums import UserRole
from freight_backend.app.schemas.pricing import RestrictedGoodCreate, RestrictedGoodResponse
from freight_backend.app.core.guards import require_role, STAFF_ROLES
from freight_backend.app.services import restricted_goods as restricted_goods_service
from freight_backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/admin/restricted-goods", tags=["Admin - Restricted Goods"])


@router.post("", response_model=RestrictedGoodResponse, status_code=status.HTTP_201_CREATED)
async def create_restricted_good(
    payload: RestrictedGoodCreate,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    good = await restricted_goods_service.create_restricted_good(db, **payload.model_dump())
    await db.commit()
    await db.refresh(good)

    await log_event(
        db=db,
        action=AuditAction.RESTRICTED_GOOD_CREATED,
        actor_id=current_user["user_id"],
        entity_type="restricted_good",
        entity_id=good.id,
        metadata={"code": good.code}
    )

    return good


@router.get("", response_model=List[RestrictedGoodResponse])
async def list_restricted_goods(
    include_inactive: bool = Query(False),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await restricted_goods_service.list_restricted_goods(db, include_inactive=include_inactive)
