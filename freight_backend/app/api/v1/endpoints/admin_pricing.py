"""
Admin Pricing API Endpoints.

Default pricing rules, customer pricing overrides and a quote preview.
Every rule mutation invalidates the rate cache.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from typing import List, Optional

from freight_backend.app.db.session import get_db
from freight_backend.app.models.pricing_rule import PricingRule, CustomerPricingOverride
from freight_backend.app.models.shipment_enums import TransportMode
from freight_backend.app.models.enums import UserRole
from freight_backend.app.schemas.pricing import (
    RateRuleFields, PricingRuleCreate, PricingRuleResponse,
    CustomerPricingOverrideCreate, CustomerPricingOverrideResponse,
    QuoteRequest, QuoteResponse,
)
from freight_backend.app.core.dependencies import get_rate_cache
from freight_backend.app.core.guards import require_role, STAFF_ROLES
from freight_backend.app.domain.billing.pricing_engine import PricingEngine
from freight_backend.app.services.audit import log_event, AuditAction
from freight_backend.app.services.cache import RateCache

router = APIRouter(prefix="/admin", tags=["Admin - Pricing"])


def validate_rule_shape(rule: RateRuleFields) -> None:
    """The rate for the rule's mode must be present and bounds must be ordered."""
    if rule.transport_mode == TransportMode.AIR and rule.rate_usd_per_kg is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Air rules require rate_usd_per_kg"
        )
    if rule.transport_mode == TransportMode.SEA and rule.flat_rate_usd_per_cbm is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sea rules require flat_rate_usd_per_cbm"
        )
    if (
        rule.min_weight_kg is not None
        and rule.max_weight_kg is not None
        and rule.min_weight_kg > rule.max_weight_kg
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="min_weight_kg must not exceed max_weight_kg"
        )
    if (
        rule.effective_from is not None
        and rule.effective_to is not None
        and rule.effective_from > rule.effective_to
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="effective_from must not be after effective_to"
        )


@router.post("/pricing-rules", response_model=PricingRuleResponse, status_code=status.HTTP_201_CREATED)
async def create_pricing_rule(
    rule: PricingRuleCreate,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db),
    rate_cache: RateCache = Depends(get_rate_cache)
):
    """
    Create a default pricing rule.

    Several rules may be active per mode; the resolver picks the narrowest
    matching weight band.
    """
    validate_rule_shape(rule)

    new_rule = PricingRule(**rule.model_dump(), is_active=True, created_by=current_user["user_id"])

    db.add(new_rule)
    await db.commit()
    await db.refresh(new_rule)
    rate_cache.invalidate()

    await log_event(
        db=db,
        action=AuditAction.PRICING_RULE_CREATED,
        actor_id=current_user["user_id"],
        entity_type="pricing_rule",
        entity_id=new_rule.id,
        metadata={"name": new_rule.name, "transport_mode": new_rule.transport_mode.value}
    )

    return new_rule


@router.get("/pricing-rules", response_model=List[PricingRuleResponse])
async def list_pricing_rules(
    transport_mode: Optional[TransportMode] = Query(None),
    include_inactive: bool = Query(False),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    query = select(PricingRule).order_by(desc(PricingRule.created_at), desc(PricingRule.id))
    if transport_mode:
        query = query.where(PricingRule.transport_mode == transport_mode)
    if not include_inactive:
        query = query.where(PricingRule.is_active == True)

    result = await db.execute(query)
    return result.scalars().all()


@router.patch("/pricing-rules/{rule_id}/deactivate", response_model=PricingRuleResponse)
async def deactivate_pricing_rule(
    rule_id: int = Path(..., description="Pricing rule ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db),
    rate_cache: RateCache = Depends(get_rate_cache)
):
    result = await db.execute(select(PricingRule).where(PricingRule.id == rule_id))
    rule = result.scalar_one_or_none()

    if not rule:
        raise HTTPException(status_code=404, detail="Pricing rule not found")

    rule.is_active = False
    await db.commit()
    await db.refresh(rule)
    rate_cache.invalidate()

    await log_event(
        db=db,
        action=AuditAction.PRICING_RULE_DEACTIVATED,
        actor_id=current_user["user_id"],
        entity_type="pricing_rule",
        entity_id=rule.id,
    )

    return rule


@router.post(
    "/customer-pricing-overrides",
    response_model=CustomerPricingOverrideResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_customer_override(
    override: CustomerPricingOverrideCreate,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db),
    rate_cache: RateCache = Depends(get_rate_cache)
):
    validate_rule_shape(override)

    new_override = CustomerPricingOverride(
        **override.model_dump(), is_active=True, created_by=current_user["user_id"]
    )

    db.add(new_override)
    await db.commit()
    await db.refresh(new_override)
    rate_cache.invalidate()

    await log_event(
        db=db,
        action=AuditAction.PRICING_OVERRIDE_CREATED,
        actor_id=current_user["user_id"],
        entity_type="customer_pricing_override",
        entity_id=new_override.id,
        metadata={"customer_id": new_override.customer_id, "name": new_override.name}
    )

    return new_override


@router.get("/customer-pricing-overrides", response_model=List[CustomerPricingOverrideResponse])
async def list_customer_overrides(
    customer_id: Optional[int] = Query(None),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    query = select(CustomerPricingOverride).order_by(
        desc(CustomerPricingOverride.created_at), desc(CustomerPricingOverride.id)
    )
    if customer_id is not None:
        query = query.where(CustomerPricingOverride.customer_id == customer_id)

    result = await db.execute(query)
    return result.scalars().all()


@router.post("/pricing/quote", response_model=QuoteResponse)
async def quote(
    request: QuoteRequest,
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    rate_cache: RateCache = Depends(get_rate_cache)
):
    """Preview the charge a shipment would get. Nothing is persisted."""
    result = await PricingEngine.resolve_charge(
        db,
        rate_cache,
        customer_id=request.customer_id,
        mode=request.transport_mode,
        weight_kg=request.weight_kg,
        volume_cbm=request.volume_cbm,
        as_of=request.as_of,
    )
    return QuoteResponse(
        amount_usd=result.amount_usd,
        pricing_source=result.source,
        rule_id=result.rule_id,
        rate_usd=result.rate_usd,
        transport_mode=result.transport_mode,
    )
