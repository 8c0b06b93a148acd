"""
Warehouse verification.

Captures measured packages at the origin warehouse, screens them against
the restricted goods catalog, prices the shipment and moves it to
WAREHOUSE_VERIFIED_PRICED in a single commit.

Flow:
1. Validate packages (at least one, positive quantity, override reasons)
2. Screen restricted goods; an unapproved restricted package rejects the shipment
3. Aggregate weight and volume (declared weight as fallback)
4. Resolve the transport mode
5. Price through the PricingEngine, then apply any manual adjustment
6. Persist packages, pricing and status together
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from freight_backend.app.core.exceptions import (
    MissingModeError, RestrictedItemBlockedError, ShipmentValidationError
)
from freight_backend.app.db.session import commit_or_conflict
from freight_backend.app.domain.billing.pricing_engine import (
    PricingEngine, aggregate_packages, package_volume_cbm, round_money, to_decimal
)
from freight_backend.app.domain.shipment_status.mapping import normalize_transport_mode
from freight_backend.app.domain.shipment_status.transitions import assert_transition
from freight_backend.app.models.package_detail import PackageDetail
from freight_backend.app.models.shipment import Shipment
from freight_backend.app.models.shipment_enums import PricingSource, ShipmentStatus
from freight_backend.app.services.audit import AuditAction, add_audit_entry
from freight_backend.app.services.cache import RateCache
from freight_backend.app.services.notification_service import StatusBroadcaster
from freight_backend.app.services.restricted_goods import load_catalog, normalize_code, screen_package
from freight_backend.app.services.shipment_status_service import ShipmentStatusService
from freight_backend.app.services.status_events import record_status_event

logger = logging.getLogger(__name__)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def build_package_rows(shipment_id: int, packages: Sequence, catalog, verified_by: Optional[int]) -> List[PackageDetail]:
    """Normalize package input into PackageDetail rows with screening applied."""
    rows = []
    for index, package in enumerate(packages):
        item_type = normalize_code(package.item_type)
        screening = screen_package(
            item_type,
            catalog,
            flagged_restricted=bool(package.is_restricted),
            flagged_reason=package.restricted_reason,
            override_requested=bool(package.restricted_override_approved),
        )
        if screening.override_approved and verified_by is None:
            raise ShipmentValidationError(
                "A restricted item override needs an identified approver",
                details={"package_index": index, "item_type": item_type},
            )

        row = PackageDetail(
            shipment_id=shipment_id,
            description=package.description,
            item_type=item_type,
            quantity=package.quantity if package.quantity is not None else 1,
            length_cm=package.length_cm,
            width_cm=package.width_cm,
            height_cm=package.height_cm,
            weight_kg=package.weight_kg,
            volume_cbm=package.volume_cbm,
            is_restricted=screening.is_restricted,
            restricted_reason=screening.reason,
            restricted_override_approved=screening.override_approved,
            restricted_override_reason=(
                package.restricted_override_reason.strip() if screening.override_approved else None
            ),
            restricted_override_by=verified_by if screening.override_approved else None,
        )
        if row.volume_cbm is None:
            derived = package_volume_cbm(row)
            row.volume_cbm = float(derived) if derived is not None else None
        rows.append(row)
    return rows


def validate_packages(packages: Sequence) -> None:
    if not packages:
        raise ShipmentValidationError("At least one package is required for warehouse verification")

    for index, package in enumerate(packages):
        if package.quantity is not None and package.quantity <= 0:
            raise ShipmentValidationError(
                "Package quantity must be a positive integer",
                details={"package_index": index},
            )
        if package.restricted_override_approved and _blank(package.restricted_override_reason):
            raise ShipmentValidationError(
                "An override reason is required when a restricted item override is approved",
                details={"package_index": index},
            )


class WarehouseVerificationService:

    @staticmethod
    async def _replace_packages(db: AsyncSession, shipment_id: int, rows: List[PackageDetail]) -> None:
        await db.execute(delete(PackageDetail).where(PackageDetail.shipment_id == shipment_id))
        db.add_all(rows)

    @staticmethod
    async def _reject_restricted(
        db: AsyncSession,
        shipment: Shipment,
        rows: List[PackageDetail],
        verified_by: Optional[int],
    ) -> None:
        """Persist the screened packages, reject the shipment, commit, then raise."""
        blocked: List[Dict[str, Any]] = [
            {"package_index": index, "item_type": row.item_type, "reason": row.restricted_reason}
            for index, row in enumerate(rows)
            if row.is_blocked
        ]

        previous = shipment.status
        await WarehouseVerificationService._replace_packages(db, shipment.id, rows)
        shipment.apply_status(ShipmentStatus.RESTRICTED_ITEM_REJECTED)
        record_status_event(
            db, ShipmentStatus.RESTRICTED_ITEM_REJECTED, verified_by,
            previous_status=previous, shipment_id=shipment.id,
            note="Restricted item without approved override",
        )
        await commit_or_conflict(db, "Shipment", shipment.id)
        await db.refresh(shipment)

        logger.warning(
            "Shipment %s rejected at verification: %d restricted package(s) blocked",
            shipment.tracking_number, len(blocked),
        )
        await StatusBroadcaster.shipment_changed(shipment, actor_id=verified_by)
        raise RestrictedItemBlockedError(shipment.id, blocked)

    @staticmethod
    async def verify(
        db: AsyncSession,
        rate_cache: RateCache,
        shipment_id: int,
        packages: Sequence,
        verified_by: Optional[int],
        explicit_mode=None,
        manual_final_charge_usd=None,
        manual_reason: Optional[str] = None,
    ) -> Shipment:
        """
        Verify and price a shipment.

        Raises:
            ResourceNotFoundError: shipment missing or soft-deleted
            ShipmentValidationError: bad package input, bad manual charge, missing measure
            StructuralTransitionError: shipment is not at the stage where it can be verified
            RestrictedItemBlockedError: a restricted package lacks an approved override
            MissingModeError: no transport mode given or recorded
            NoApplicableRateError: no pricing rule matches
        """
        shipment = await ShipmentStatusService.get_shipment(db, shipment_id, for_update=True)

        try:
            mode = normalize_transport_mode(explicit_mode) or shipment.transport_mode
            assert_transition(mode, shipment.status, ShipmentStatus.WAREHOUSE_VERIFIED_PRICED)
            validate_packages(packages)

            catalog = await load_catalog(db, (p.item_type for p in packages))
            rows = build_package_rows(shipment.id, packages, catalog, verified_by)
        except Exception:
            await db.rollback()
            raise

        if any(row.is_blocked for row in rows):
            await WarehouseVerificationService._reject_restricted(db, shipment, rows, verified_by)

        try:
            total_weight, total_volume = aggregate_packages(rows)
            declared = to_decimal(shipment.declared_weight_kg)
            billable_weight = total_weight
            if (billable_weight is None or billable_weight <= 0) and declared is not None and declared > 0:
                billable_weight = declared

            if mode is None:
                raise MissingModeError(
                    "Transport mode is required to price the shipment",
                    details={"shipment_id": shipment.id},
                )

            quote = await PricingEngine.resolve_charge(
                db,
                rate_cache,
                customer_id=shipment.customer_id,
                mode=mode,
                weight_kg=billable_weight,
                volume_cbm=total_volume,
            )

            final_charge = quote.amount_usd
            source = quote.source
            reason = None
            if manual_final_charge_usd is not None:
                if _blank(manual_reason):
                    raise ShipmentValidationError(
                        "A reason is required when overriding the calculated charge",
                        details={"manual_final_charge_usd": str(manual_final_charge_usd)},
                    )
                final_charge = round_money(to_decimal(manual_final_charge_usd))
                source = PricingSource.MANUAL_ADJUSTMENT
                reason = manual_reason.strip()

            if final_charge <= Decimal("0"):
                raise ShipmentValidationError(
                    "Final charge must be greater than zero",
                    details={"final_charge_usd": str(final_charge)},
                )
        except Exception:
            await db.rollback()
            raise

        previous = shipment.status
        shipment.transport_mode = mode
        shipment.total_weight_kg = float(billable_weight) if billable_weight is not None else None
        shipment.total_volume_cbm = float(total_volume) if total_volume is not None else None
        shipment.calculated_charge_usd = quote.amount_usd
        shipment.final_charge_usd = final_charge
        shipment.pricing_source = source
        shipment.price_adjustment_reason = reason
        shipment.price_calculated_at = datetime.now(timezone.utc)
        shipment.price_calculated_by = verified_by
        shipment.apply_status(ShipmentStatus.WAREHOUSE_VERIFIED_PRICED)

        await WarehouseVerificationService._replace_packages(db, shipment.id, rows)
        record_status_event(
            db, ShipmentStatus.WAREHOUSE_VERIFIED_PRICED, verified_by,
            previous_status=previous, shipment_id=shipment.id,
        )
        if source == PricingSource.MANUAL_ADJUSTMENT:
            add_audit_entry(
                db,
                AuditAction.CHARGE_MANUALLY_ADJUSTED,
                actor_id=verified_by,
                entity_type="shipment",
                entity_id=shipment.id,
                metadata={
                    "calculated_charge_usd": str(quote.amount_usd),
                    "final_charge_usd": str(final_charge),
                    "reason": reason,
                },
            )

        await commit_or_conflict(db, "Shipment", shipment.id)
        await db.refresh(shipment)

        logger.info(
            "Shipment %s verified: %s USD (%s, rule %s)",
            shipment.tracking_number, final_charge, source.value, quote.rule_id,
        )
        await StatusBroadcaster.shipment_changed(shipment, actor_id=verified_by)
        return shipment
