"""
Pricing Engine (Domain Logic).

Turns verified package measurements into a charge.

Air: total weight (kg) * rate_usd_per_kg
Sea: total volume (m³) * flat_rate_usd_per_cbm

Money is Decimal, rounded half-up to cents.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from freight_backend.app.core.exceptions import NoApplicableRateError, ShipmentValidationError
from freight_backend.app.domain.billing.pricing_resolver import PricingResolver
from freight_backend.app.models.shipment_enums import PricingSource, TransportMode
from freight_backend.app.services.cache import RateCache

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
CBM_PER_CUBIC_CM = Decimal("1000000")


def to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def package_volume_cbm(package) -> Optional[Decimal]:
    """Direct volume if recorded, else L*W*H in cm converted to m³."""
    if package.volume_cbm is not None:
        return to_decimal(package.volume_cbm)

    dims = (package.length_cm, package.width_cm, package.height_cm)
    if any(d is None for d in dims):
        return None

    length, width, height = (to_decimal(d) for d in dims)
    return length * width * height / CBM_PER_CUBIC_CM


def aggregate_packages(packages: Iterable) -> Tuple[Optional[Decimal], Optional[Decimal]]:
    """
    Sum weight and volume across packages.

    Quantity is informational; each row already carries its own measured
    totals. A measure no package carries comes back as None.
    """
    total_weight: Optional[Decimal] = None
    total_volume: Optional[Decimal] = None

    for package in packages:
        weight = to_decimal(package.weight_kg)
        if weight is not None:
            total_weight = (total_weight or Decimal("0")) + weight

        volume = package_volume_cbm(package)
        if volume is not None:
            total_volume = (total_volume or Decimal("0")) + volume

    return total_weight, total_volume


@dataclass(frozen=True)
class ChargeQuote:
    amount_usd: Decimal
    source: PricingSource
    rule_id: int
    rate_usd: Decimal
    transport_mode: TransportMode


class PricingEngine:

    @staticmethod
    def require_billable_measure(mode: TransportMode, weight_kg: Optional[Decimal], volume_cbm: Optional[Decimal]) -> None:
        """Air bills on weight, sea on volume; the billed measure must be positive."""
        if mode == TransportMode.AIR:
            if weight_kg is None or weight_kg <= 0:
                raise ShipmentValidationError(
                    "Air pricing requires a positive weight",
                    details={"weight_kg": str(weight_kg) if weight_kg is not None else None},
                )
            return

        if volume_cbm is None or volume_cbm <= 0:
            raise ShipmentValidationError(
                "Sea pricing requires a positive volume",
                details={"volume_cbm": str(volume_cbm) if volume_cbm is not None else None},
            )

    @staticmethod
    def compute(mode: TransportMode, rate: Decimal, weight_kg: Optional[Decimal], volume_cbm: Optional[Decimal]) -> Decimal:
        PricingEngine.require_billable_measure(mode, weight_kg, volume_cbm)
        if mode == TransportMode.AIR:
            return round_money(weight_kg * rate)
        return round_money(volume_cbm * rate)

    @staticmethod
    async def resolve_charge(
        db: AsyncSession,
        rate_cache: RateCache,
        customer_id: Optional[int],
        mode: TransportMode,
        weight_kg=None,
        volume_cbm=None,
        as_of: Optional[datetime] = None,
    ) -> ChargeQuote:
        """
        Resolve the applicable rate and compute the charge.

        Raises:
            ShipmentValidationError: the billed measure is missing or not positive
            NoApplicableRateError: no override or default rule matches
        """
        weight_kg = to_decimal(weight_kg)
        volume_cbm = to_decimal(volume_cbm)
        as_of = as_of or datetime.now(timezone.utc)

        PricingEngine.require_billable_measure(mode, weight_kg, volume_cbm)

        overrides = []
        if customer_id is not None:
            overrides = await rate_cache.customer_overrides(db, customer_id, mode)
        defaults = await rate_cache.default_rules(db, mode)

        resolved = PricingResolver.resolve(overrides, defaults, mode, weight_kg, as_of)
        if resolved is None:
            logger.warning(
                "No applicable %s rate (customer=%s, weight=%s, volume=%s)",
                mode.value, customer_id, weight_kg, volume_cbm,
            )
            raise NoApplicableRateError(mode.value, weight_kg=weight_kg, volume_cbm=volume_cbm)

        rule, source = resolved
        rate = rule.rate_for(mode)
        amount = PricingEngine.compute(mode, rate, weight_kg, volume_cbm)

        logger.info(
            "Priced %s shipment for customer %s: %s USD via %s rule %s",
            mode.value, customer_id, amount, source.value, rule.id,
        )
        return ChargeQuote(
            amount_usd=amount,
            source=source,
            rule_id=rule.id,
            rate_usd=rate,
            transport_mode=mode,
        )
