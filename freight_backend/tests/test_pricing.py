"""
Pricing engine: rate resolution precedence, charge computation and the
rate cache lifecycle.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from freight_backend.app.core.exceptions import NoApplicableRateError, ShipmentValidationError
from freight_backend.app.domain.billing.pricing_engine import (
    PricingEngine, aggregate_packages, package_volume_cbm, round_money,
)
from freight_backend.app.domain.billing.pricing_resolver import PricingResolver, RateRule, select_rule
from freight_backend.app.models.pricing_rule import PricingRule, CustomerPricingOverride
from freight_backend.app.models.shipment_enums import PricingSource, TransportMode
from freight_backend.app.services.cache import RateCache

AIR = TransportMode.AIR
SEA = TransportMode.SEA
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def rule(rule_id, mode=AIR, min_kg=None, max_kg=None, per_kg=None, per_cbm=None,
         starts=None, ends=None, created=NOW - timedelta(days=30), customer_id=None):
    return RateRule(
        id=rule_id,
        transport_mode=mode,
        min_weight_kg=Decimal(min_kg) if min_kg is not None else None,
        max_weight_kg=Decimal(max_kg) if max_kg is not None else None,
        rate_usd_per_kg=Decimal(per_kg) if per_kg is not None else None,
        flat_rate_usd_per_cbm=Decimal(per_cbm) if per_cbm is not None else None,
        effective_from=starts,
        effective_to=ends,
        created_at=created,
        customer_id=customer_id,
    )


async def add_default_rule(db, **fields):
    fields.setdefault("name", "rule")
    pricing_rule = PricingRule(**fields)
    db.add(pricing_rule)
    await db.commit()
    await db.refresh(pricing_rule)
    return pricing_rule


async def add_override(db, customer_id, **fields):
    fields.setdefault("name", "override")
    override = CustomerPricingOverride(customer_id=customer_id, **fields)
    db.add(override)
    await db.commit()
    await db.refresh(override)
    return override


# --- rule selection ---------------------------------------------------------

def test_narrowest_band_wins():
    wide = rule(1, min_kg="0", max_kg="1000", per_kg="5")
    narrow = rule(2, min_kg="5", max_kg="20", per_kg="4")
    open_ended = rule(3, min_kg="1", per_kg="6")

    assert select_rule([wide, narrow, open_ended], AIR, Decimal("10"), NOW) is narrow


def test_open_band_counts_as_infinite_width():
    open_ended = rule(1, min_kg="0", per_kg="6")
    bounded = rule(2, min_kg="0", max_kg="100000", per_kg="5")

    assert select_rule([open_ended, bounded], AIR, Decimal("10"), NOW) is bounded


def test_ties_go_to_most_recently_created_then_highest_id():
    older = rule(1, min_kg="0", max_kg="50", per_kg="5", created=NOW - timedelta(days=3))
    newer = rule(2, min_kg="10", max_kg="60", per_kg="4", created=NOW - timedelta(days=1))
    assert select_rule([older, newer], AIR, Decimal("20"), NOW) is newer

    same_time_low = rule(3, min_kg="0", max_kg="50", per_kg="5", created=NOW)
    same_time_high = rule(4, min_kg="0", max_kg="50", per_kg="4", created=NOW)
    assert select_rule([same_time_low, same_time_high], AIR, Decimal("20"), NOW) is same_time_high


def test_band_bounds_are_inclusive():
    band = rule(1, min_kg="10", max_kg="20", per_kg="5")
    assert select_rule([band], AIR, Decimal("10"), NOW) is band
    assert select_rule([band], AIR, Decimal("20"), NOW) is band
    assert select_rule([band], AIR, Decimal("20.001"), NOW) is None


def test_effective_window_is_respected():
    future = rule(1, per_kg="5", starts=NOW + timedelta(days=1))
    expired = rule(2, per_kg="5", ends=NOW - timedelta(seconds=1))
    current = rule(3, per_kg="7", starts=NOW - timedelta(days=1), ends=NOW + timedelta(days=1))

    assert select_rule([future, expired], AIR, Decimal("10"), NOW) is None
    assert select_rule([future, expired, current], AIR, Decimal("10"), NOW) is current


def test_rule_without_rate_for_mode_is_skipped():
    sea_only = rule(1, per_cbm="120")
    assert select_rule([sea_only], AIR, Decimal("10"), NOW) is None


def test_resolver_prefers_override_and_tags_source():
    default = rule(1, min_kg="5", max_kg="20", per_kg="5")
    override = rule(2, per_kg="4.5", customer_id=7)

    matched, source = PricingResolver.resolve([override], [default], AIR, Decimal("10"), NOW)
    assert matched is override
    assert source == PricingSource.CUSTOMER_OVERRIDE

    matched, source = PricingResolver.resolve([], [default], AIR, Decimal("10"), NOW)
    assert matched is default
    assert source == PricingSource.DEFAULT_RATE

    assert PricingResolver.resolve([], [], AIR, Decimal("10"), NOW) is None


def test_resolver_accepts_naive_as_of():
    current = rule(1, per_kg="5", starts=NOW - timedelta(days=1))
    matched, _ = PricingResolver.resolve([], [current], AIR, Decimal("1"), NOW.replace(tzinfo=None))
    assert matched is current


# --- measurements and money -------------------------------------------------

def test_round_money_is_half_up():
    assert round_money(Decimal("4.9995")) == Decimal("5.00")
    assert round_money(Decimal("1.005")) == Decimal("1.01")
    assert round_money(Decimal("1.004")) == Decimal("1.00")


def test_package_volume_direct_or_from_dimensions():
    direct = SimpleNamespace(volume_cbm=0.75, length_cm=10, width_cm=10, height_cm=10)
    measured = SimpleNamespace(volume_cbm=None, length_cm=100, width_cm=50, height_cm=40)
    partial = SimpleNamespace(volume_cbm=None, length_cm=100, width_cm=None, height_cm=40)

    assert package_volume_cbm(direct) == Decimal("0.75")
    assert package_volume_cbm(measured) == Decimal("0.2")
    assert package_volume_cbm(partial) is None


def test_aggregate_packages_sums_what_is_present():
    packages = [
        SimpleNamespace(weight_kg=4.5, volume_cbm=None, length_cm=100, width_cm=100, height_cm=100),
        SimpleNamespace(weight_kg=None, volume_cbm=0.5, length_cm=None, width_cm=None, height_cm=None),
        SimpleNamespace(weight_kg=5.5, volume_cbm=None, length_cm=None, width_cm=None, height_cm=None),
    ]
    weight, volume = aggregate_packages(packages)
    assert weight == Decimal("10.0")
    assert volume == Decimal("1.5")

    assert aggregate_packages([]) == (None, None)


def test_compute_requires_billed_measure():
    with pytest.raises(ShipmentValidationError):
        PricingEngine.compute(AIR, Decimal("5"), None, Decimal("2"))
    with pytest.raises(ShipmentValidationError):
        PricingEngine.compute(SEA, Decimal("120"), Decimal("10"), Decimal("0"))


# --- engine against the database -------------------------------------------

@pytest.mark.asyncio
async def test_air_charge_from_default_rule(db_session, rate_cache, customer):
    default = await add_default_rule(db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("5.00"))

    quote = await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, AIR, weight_kg=10)

    assert quote.amount_usd == Decimal("50.00")
    assert quote.source == PricingSource.DEFAULT_RATE
    assert quote.rule_id == default.id


@pytest.mark.asyncio
async def test_sea_charge_from_default_rule(db_session, rate_cache, customer):
    await add_default_rule(db_session, transport_mode=SEA, flat_rate_usd_per_cbm=Decimal("120.00"))

    quote = await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, SEA, volume_cbm=2.5)

    assert quote.amount_usd == Decimal("300.00")
    assert quote.source == PricingSource.DEFAULT_RATE


@pytest.mark.asyncio
async def test_narrow_customer_override_beats_default(db_session, rate_cache, customer, other_customer):
    await add_default_rule(db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("5.00"))
    await add_override(
        db_session, customer.id, transport_mode=AIR,
        min_weight_kg=Decimal("0"), max_weight_kg=Decimal("1000"), rate_usd_per_kg=Decimal("4.50"),
    )
    narrow = await add_override(
        db_session, customer.id, transport_mode=AIR,
        min_weight_kg=Decimal("5"), max_weight_kg=Decimal("20"), rate_usd_per_kg=Decimal("4.00"),
    )

    quote = await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, AIR, weight_kg=10)
    assert quote.amount_usd == Decimal("40.00")
    assert quote.source == PricingSource.CUSTOMER_OVERRIDE
    assert quote.rule_id == narrow.id

    # Overrides never leak to other customers
    quote = await PricingEngine.resolve_charge(db_session, rate_cache, other_customer.id, AIR, weight_kg=10)
    assert quote.amount_usd == Decimal("50.00")
    assert quote.source == PricingSource.DEFAULT_RATE


@pytest.mark.asyncio
async def test_inactive_and_out_of_window_rules_are_ignored(db_session, rate_cache, customer):
    await add_default_rule(db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("5"), is_active=False)
    await add_default_rule(
        db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("6"),
        effective_from=datetime.now(timezone.utc) + timedelta(days=2),
    )

    with pytest.raises(NoApplicableRateError) as exc_info:
        await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, AIR, weight_kg=10)

    assert exc_info.value.error_code == "ERR_PRICING_001"
    assert exc_info.value.details["transport_mode"] == "air"


@pytest.mark.asyncio
async def test_no_rule_never_charges_zero(db_session, rate_cache, customer):
    with pytest.raises(NoApplicableRateError):
        await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, SEA, volume_cbm=1)


@pytest.mark.asyncio
async def test_air_without_weight_is_rejected_before_lookup(db_session, rate_cache, customer):
    with pytest.raises(ShipmentValidationError):
        await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, AIR, weight_kg=0)


@pytest.mark.asyncio
async def test_quote_without_customer_uses_defaults(db_session, rate_cache):
    await add_default_rule(db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("13.5"))

    quote = await PricingEngine.resolve_charge(db_session, rate_cache, None, AIR, weight_kg="3.333")
    assert quote.amount_usd == Decimal("45.00")


# --- cache lifecycle --------------------------------------------------------

@pytest.mark.asyncio
async def test_cache_serves_snapshot_until_invalidated(db_session, rate_cache, customer):
    await add_default_rule(db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("5"))
    first = await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, AIR, weight_kg=10)

    await add_default_rule(
        db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("6"),
        min_weight_kg=Decimal("0"), max_weight_kg=Decimal("50"),
    )
    cached = await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, AIR, weight_kg=10)
    assert cached.amount_usd == first.amount_usd == Decimal("50.00")

    rate_cache.invalidate()
    fresh = await PricingEngine.resolve_charge(db_session, rate_cache, customer.id, AIR, weight_kg=10)
    assert fresh.amount_usd == Decimal("60.00")


@pytest.mark.asyncio
async def test_cache_entries_expire(db_session):
    cache = RateCache(ttl_seconds=60)
    cache.initialize()

    await add_default_rule(db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("5"))
    assert len(await cache.default_rules(db_session, AIR)) == 1

    await add_default_rule(db_session, transport_mode=AIR, rate_usd_per_kg=Decimal("6"))
    assert len(await cache.default_rules(db_session, AIR)) == 1

    # Age every entry past its expiry
    for key, (expires_at, rules) in list(cache._entries.items()):
        cache._entries[key] = (expires_at - 61, rules)

    assert len(await cache.default_rules(db_session, AIR)) == 2


@pytest.mark.asyncio
async def test_expired_customer_entries_are_swept_on_write(db_session, customer, other_customer):
    cache = RateCache(ttl_seconds=60)
    cache.initialize()

    await cache.customer_overrides(db_session, customer.id, AIR)
    await cache.customer_overrides(db_session, other_customer.id, AIR)
    assert len(cache._entries) == 2

    for key, (expires_at, rules) in list(cache._entries.items()):
        cache._entries[key] = (expires_at - 61, rules)

    # Neither customer is read again; writing another key drops both
    await cache.default_rules(db_session, SEA)
    assert list(cache._entries) == [("default", None, SEA)]


@pytest.mark.asyncio
async def test_cache_must_be_initialized(db_session):
    cache = RateCache()
    with pytest.raises(RuntimeError):
        await cache.default_rules(db_session, AIR)

    cache.initialize()
    assert cache.is_ready
    cache.teardown()
    assert not cache.is_ready
