"""
Warehouse verification: package capture, restricted goods screening and
pricing in one step.
"""

import pytest
from decimal import Decimal
from sqlalchemy import select

from freight_backend.app.core.exceptions import (
    MissingModeError, NoApplicableRateError, RestrictedItemBlockedError,
    ShipmentValidationError, StructuralTransitionError,
)
from freight_backend.app.models.audit_log import AuditLog
from freight_backend.app.models.package_detail import PackageDetail
from freight_backend.app.models.pricing_rule import PricingRule, CustomerPricingOverride
from freight_backend.app.models.restricted_good import RestrictedGood
from freight_backend.app.models.shipment import Shipment
from freight_backend.app.models.shipment_enums import PricingSource, ShipmentStatus, TransportMode
from freight_backend.app.schemas.shipment import PackageInput
from freight_backend.app.services.audit import AuditAction
from freight_backend.app.services.restricted_goods import screen_package
from freight_backend.app.services.shipment_status_service import ShipmentStatusService
from freight_backend.app.services.warehouse_verification import WarehouseVerificationService

S = ShipmentStatus


@pytest.fixture
async def pricing(db_session):
    db_session.add_all([
        PricingRule(name="Air standard", transport_mode=TransportMode.AIR, rate_usd_per_kg=Decimal("5.00")),
        PricingRule(name="Sea standard", transport_mode=TransportMode.SEA, flat_rate_usd_per_cbm=Decimal("120.00")),
    ])
    await db_session.commit()


@pytest.fixture
async def catalog(db_session):
    db_session.add_all([
        RestrictedGood(code="lithium_battery", name="Lithium batteries", allow_with_override=True),
        RestrictedGood(code="firearm", name="Firearms", allow_with_override=False),
    ])
    await db_session.commit()


async def received_shipment(db, customer, staff_user, mode=TransportMode.AIR, declared_weight_kg=None):
    shipment = await ShipmentStatusService.create_shipment(
        db, customer.id, staff_user.id, transport_mode=mode, declared_weight_kg=declared_weight_kg,
    )
    for status in (S.AWAITING_WAREHOUSE_RECEIPT, S.WAREHOUSE_RECEIVED):
        shipment = await ShipmentStatusService.update_status(db, shipment.id, status, staff_user.id)
    return shipment


async def committed(session_factory, shipment_id):
    async with session_factory() as session:
        shipment = (await session.execute(select(Shipment).where(Shipment.id == shipment_id))).scalar_one()
        result = await session.execute(
            select(PackageDetail).where(PackageDetail.shipment_id == shipment_id).order_by(PackageDetail.id)
        )
        return shipment, list(result.scalars().all())


@pytest.mark.asyncio
async def test_air_shipment_is_verified_and_priced(db_session, session_factory, rate_cache, pricing, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)

    verified = await WarehouseVerificationService.verify(
        db_session, rate_cache, shipment.id,
        [PackageInput(weight_kg=4.0), PackageInput(weight_kg=6.0, length_cm=100, width_cm=50, height_cm=40)],
        staff_user.id,
    )

    assert verified.status == S.WAREHOUSE_VERIFIED_PRICED
    assert verified.total_weight_kg == pytest.approx(10.0)
    assert verified.calculated_charge_usd == Decimal("50.00")
    assert verified.final_charge_usd == Decimal("50.00")
    assert verified.pricing_source == PricingSource.DEFAULT_RATE
    assert verified.price_calculated_by == staff_user.id

    _, packages = await committed(session_factory, shipment.id)
    assert len(packages) == 2
    assert packages[1].volume_cbm == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_sea_shipment_is_priced_by_volume(db_session, rate_cache, pricing, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user, mode=TransportMode.SEA)

    verified = await WarehouseVerificationService.verify(
        db_session, rate_cache, shipment.id, [PackageInput(volume_cbm=2.5)], staff_user.id,
    )

    assert verified.total_volume_cbm == pytest.approx(2.5)
    assert verified.final_charge_usd == Decimal("300.00")


@pytest.mark.asyncio
async def test_customer_override_is_used(db_session, rate_cache, pricing, customer, staff_user):
    db_session.add(CustomerPricingOverride(
        name="Key account", customer_id=customer.id, transport_mode=TransportMode.AIR,
        min_weight_kg=Decimal("5"), max_weight_kg=Decimal("20"), rate_usd_per_kg=Decimal("4.00"),
    ))
    await db_session.commit()
    shipment = await received_shipment(db_session, customer, staff_user)

    verified = await WarehouseVerificationService.verify(
        db_session, rate_cache, shipment.id, [PackageInput(weight_kg=10)], staff_user.id,
    )

    assert verified.final_charge_usd == Decimal("40.00")
    assert verified.pricing_source == PricingSource.CUSTOMER_OVERRIDE


@pytest.mark.asyncio
async def test_explicit_mode_fills_a_missing_one(db_session, rate_cache, pricing, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user, mode=None)

    verified = await WarehouseVerificationService.verify(
        db_session, rate_cache, shipment.id, [PackageInput(weight_kg=2)], staff_user.id,
        explicit_mode="AIR",
    )

    assert verified.transport_mode == TransportMode.AIR
    assert verified.final_charge_usd == Decimal("10.00")


@pytest.mark.asyncio
async def test_missing_mode_is_rejected(db_session, session_factory, rate_cache, pricing, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user, mode=None)
    shipment_id = shipment.id

    with pytest.raises(MissingModeError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment_id, [PackageInput(weight_kg=2)], staff_user.id,
        )

    persisted, packages = await committed(session_factory, shipment_id)
    assert persisted.status == S.WAREHOUSE_RECEIVED
    assert packages == []


@pytest.mark.asyncio
async def test_declared_weight_is_the_fallback(db_session, rate_cache, pricing, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user, declared_weight_kg=8.0)

    verified = await WarehouseVerificationService.verify(
        db_session, rate_cache, shipment.id, [PackageInput(description="Unweighed carton")], staff_user.id,
    )

    assert verified.total_weight_kg == pytest.approx(8.0)
    assert verified.final_charge_usd == Decimal("40.00")


@pytest.mark.asyncio
async def test_air_without_any_weight_is_rejected(db_session, rate_cache, pricing, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)

    with pytest.raises(ShipmentValidationError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment.id, [PackageInput(volume_cbm=1.0)], staff_user.id,
        )


@pytest.mark.asyncio
async def test_no_matching_rule(db_session, session_factory, rate_cache, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)
    shipment_id = shipment.id

    with pytest.raises(NoApplicableRateError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment_id, [PackageInput(weight_kg=3)], staff_user.id,
        )

    persisted, _ = await committed(session_factory, shipment_id)
    assert persisted.status == S.WAREHOUSE_RECEIVED
    assert persisted.final_charge_usd is None


@pytest.mark.asyncio
async def test_wrong_stage_is_rejected(db_session, rate_cache, pricing, customer, staff_user):
    shipment = await ShipmentStatusService.create_shipment(
        db_session, customer.id, staff_user.id, transport_mode=TransportMode.AIR,
    )

    with pytest.raises(StructuralTransitionError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment.id, [PackageInput(weight_kg=3)], staff_user.id,
        )


@pytest.mark.asyncio
async def test_manual_adjustment_is_audited(db_session, rate_cache, pricing, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)

    verified = await WarehouseVerificationService.verify(
        db_session, rate_cache, shipment.id, [PackageInput(weight_kg=10)], staff_user.id,
        manual_final_charge_usd=Decimal("45.555"), manual_reason="Loyalty discount",
    )

    assert verified.calculated_charge_usd == Decimal("50.00")
    assert verified.final_charge_usd == Decimal("45.56")
    assert verified.pricing_source == PricingSource.MANUAL_ADJUSTMENT
    assert verified.price_adjustment_reason == "Loyalty discount"

    result = await db_session.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.CHARGE_MANUALLY_ADJUSTED)
    )
    entry = result.scalar_one()
    assert entry.entity_id == shipment.id
    assert entry.meta_data["calculated_charge_usd"] == "50.00"
    assert entry.meta_data["final_charge_usd"] == "45.56"


@pytest.mark.asyncio
async def test_manual_adjustment_needs_reason_and_positive_amount(db_session, rate_cache, pricing, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)
    shipment_id = shipment.id

    with pytest.raises(ShipmentValidationError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment_id, [PackageInput(weight_kg=10)], staff_user.id,
            manual_final_charge_usd=Decimal("45"), manual_reason="  ",
        )

    with pytest.raises(ShipmentValidationError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment_id, [PackageInput(weight_kg=10)], staff_user.id,
            manual_final_charge_usd=Decimal("0"), manual_reason="Waived",
        )


@pytest.mark.asyncio
async def test_restricted_item_blocks_verification(
    db_session, session_factory, rate_cache, pricing, catalog, customer, staff_user, mock_redis,
):
    shipment = await received_shipment(db_session, customer, staff_user)
    shipment_id = shipment.id
    mock_redis.published.clear()

    with pytest.raises(RestrictedItemBlockedError) as exc_info:
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment_id,
            [PackageInput(weight_kg=3), PackageInput(weight_kg=2, item_type=" Lithium_Battery ")],
            staff_user.id,
        )

    blocked = exc_info.value.details["blocked_packages"]
    assert blocked == [
        {"package_index": 1, "item_type": "lithium_battery", "reason": "Restricted item type: Lithium batteries"}
    ]

    persisted, packages = await committed(session_factory, shipment_id)
    assert persisted.status == S.RESTRICTED_ITEM_REJECTED
    assert persisted.final_charge_usd is None
    assert [p.is_restricted for p in packages] == [False, True]
    assert len(mock_redis.published) == 1


@pytest.mark.asyncio
async def test_approved_override_lets_restricted_item_through(db_session, rate_cache, pricing, catalog, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)

    verified = await WarehouseVerificationService.verify(
        db_session, rate_cache, shipment.id,
        [PackageInput(
            weight_kg=2, item_type="lithium_battery",
            restricted_override_approved=True, restricted_override_reason="Installed in equipment",
        )],
        staff_user.id,
    )

    assert verified.status == S.WAREHOUSE_VERIFIED_PRICED
    package = (await db_session.execute(
        select(PackageDetail).where(PackageDetail.shipment_id == shipment.id)
    )).scalar_one()
    assert package.is_restricted
    assert package.restricted_override_approved
    assert package.restricted_override_by == staff_user.id


@pytest.mark.asyncio
async def test_override_requires_reason(db_session, rate_cache, pricing, catalog, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)

    with pytest.raises(ShipmentValidationError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment.id,
            [PackageInput(weight_kg=2, item_type="lithium_battery", restricted_override_approved=True)],
            staff_user.id,
        )


@pytest.mark.asyncio
async def test_override_needs_an_identified_approver(db_session, session_factory, rate_cache, pricing, catalog, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)
    shipment_id = shipment.id

    with pytest.raises(ShipmentValidationError) as exc_info:
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment_id,
            [
                PackageInput(weight_kg=3),
                PackageInput(
                    weight_kg=2, item_type="lithium_battery",
                    restricted_override_approved=True, restricted_override_reason="Installed in equipment",
                ),
            ],
            None,
        )

    assert exc_info.value.details == {"package_index": 1, "item_type": "lithium_battery"}
    persisted, packages = await committed(session_factory, shipment_id)
    assert persisted.status == S.WAREHOUSE_RECEIVED
    assert packages == []


@pytest.mark.asyncio
async def test_catalog_entry_without_override_stays_blocked(db_session, rate_cache, pricing, catalog, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)

    with pytest.raises(RestrictedItemBlockedError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment.id,
            [PackageInput(
                weight_kg=2, item_type="firearm",
                restricted_override_approved=True, restricted_override_reason="Collector",
            )],
            staff_user.id,
        )


@pytest.mark.asyncio
async def test_rejected_shipment_can_be_reverified_after_approval(db_session, rate_cache, pricing, catalog, customer, staff_user):
    shipment = await received_shipment(db_session, customer, staff_user)
    shipment_id = shipment.id

    with pytest.raises(RestrictedItemBlockedError):
        await WarehouseVerificationService.verify(
            db_session, rate_cache, shipment_id,
            [PackageInput(weight_kg=2, is_restricted=True, restricted_reason="Undeclared liquid")],
            staff_user.id,
        )

    verified = await WarehouseVerificationService.verify(
        db_session, rate_cache, shipment_id,
        [PackageInput(
            weight_kg=2, is_restricted=True, restricted_reason="Undeclared liquid",
            restricted_override_approved=True, restricted_override_reason="Sealed cosmetics",
        )],
        staff_user.id,
    )
    assert verified.status == S.WAREHOUSE_VERIFIED_PRICED

    packages = (await db_session.execute(
        select(PackageDetail).where(PackageDetail.shipment_id == shipment_id)
    )).scalars().all()
    assert len(packages) == 1


def test_screening_rules():
    good = RestrictedGood(code="lithium_battery", name="Lithium batteries", allow_with_override=True)
    banned = RestrictedGood(code="firearm", name="Firearms", allow_with_override=False)
    catalog = {"lithium_battery": good, "firearm": banned}

    assert not screen_package("books", catalog).is_restricted
    assert screen_package("LITHIUM_BATTERY", catalog).blocked
    assert not screen_package("lithium_battery", catalog, override_requested=True).blocked
    assert screen_package("firearm", catalog, override_requested=True).blocked

    flagged = screen_package(None, catalog, flagged_restricted=True, flagged_reason="Leaking")
    assert flagged.blocked
    assert flagged.reason == "Leaking"
