"""
Pricing Rule Resolver.

Responsible for determining the applicable rate for a shipment.
Follows priority:
1. Customer-specific override (active, in window, weight in band)
2. Default pricing rule (same matching)

Within each tier the narrowest weight band wins; ties go to the most
recently created rule, then the highest id.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from freight_backend.app.models.shipment_enums import PricingSource, TransportMode

logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class RateRule:
    """
    Read-only snapshot of a PricingRule or CustomerPricingOverride row.

    Snapshots are what the rate cache holds, so they outlive the session
    that loaded them.
    """
    id: int
    transport_mode: TransportMode
    min_weight_kg: Optional[Decimal]
    max_weight_kg: Optional[Decimal]
    rate_usd_per_kg: Optional[Decimal]
    flat_rate_usd_per_cbm: Optional[Decimal]
    effective_from: Optional[datetime]
    effective_to: Optional[datetime]
    created_at: Optional[datetime]
    customer_id: Optional[int] = None

    @classmethod
    def from_row(cls, row) -> "RateRule":
        return cls(
            id=row.id,
            transport_mode=row.transport_mode,
            min_weight_kg=_decimal(row.min_weight_kg),
            max_weight_kg=_decimal(row.max_weight_kg),
            rate_usd_per_kg=_decimal(row.rate_usd_per_kg),
            flat_rate_usd_per_cbm=_decimal(row.flat_rate_usd_per_cbm),
            effective_from=as_utc(row.effective_from),
            effective_to=as_utc(row.effective_to),
            created_at=as_utc(row.created_at),
            customer_id=getattr(row, "customer_id", None),
        )

    def rate_for(self, mode: TransportMode) -> Optional[Decimal]:
        if mode == TransportMode.AIR:
            return self.rate_usd_per_kg
        return self.flat_rate_usd_per_cbm

    @property
    def band_width(self) -> Decimal:
        """Width of the weight band; an open bound makes it infinite."""
        if self.min_weight_kg is None or self.max_weight_kg is None:
            return Decimal("Infinity")
        return self.max_weight_kg - self.min_weight_kg

    def in_window(self, as_of: datetime) -> bool:
        if self.effective_from is not None and as_of < self.effective_from:
            return False
        if self.effective_to is not None and as_of > self.effective_to:
            return False
        return True

    def covers_weight(self, weight_kg: Optional[Decimal]) -> bool:
        # Sea shipments may be priced without a weight; bands do not apply then
        if weight_kg is None:
            return True
        if self.min_weight_kg is not None and weight_kg < self.min_weight_kg:
            return False
        if self.max_weight_kg is not None and weight_kg > self.max_weight_kg:
            return False
        return True

    def matches(self, mode: TransportMode, weight_kg: Optional[Decimal], as_of: datetime) -> bool:
        rate = self.rate_for(mode)
        return (
            self.transport_mode == mode
            and rate is not None
            and rate > 0
            and self.in_window(as_of)
            and self.covers_weight(weight_kg)
        )


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _precedence_key(rule: RateRule):
    created = rule.created_at or _EPOCH
    return (rule.band_width, -created.timestamp(), -rule.id)


def select_rule(
    rules: Sequence[RateRule],
    mode: TransportMode,
    weight_kg: Optional[Decimal],
    as_of: datetime,
) -> Optional[RateRule]:
    """Pick the most specific matching rule, or None."""
    candidates = [rule for rule in rules if rule.matches(mode, weight_kg, as_of)]
    if not candidates:
        return None
    return min(candidates, key=_precedence_key)


class PricingResolver:

    @staticmethod
    def resolve(
        overrides: Sequence[RateRule],
        defaults: Sequence[RateRule],
        mode: TransportMode,
        weight_kg: Optional[Decimal],
        as_of: datetime,
    ) -> Optional[Tuple[RateRule, PricingSource]]:
        """
        Resolve the applicable rule for a shipment.

        Returns:
            (rule, source tag), or None when nothing matches.
        """
        as_of = as_utc(as_of)

        rule = select_rule(overrides, mode, weight_kg, as_of)
        if rule is not None:
            logger.debug("Customer override %s matched (%s, weight=%s)", rule.id, mode.value, weight_kg)
            return rule, PricingSource.CUSTOMER_OVERRIDE

        rule = select_rule(defaults, mode, weight_kg, as_of)
        if rule is not None:
            logger.debug("Default rule %s matched (%s, weight=%s)", rule.id, mode.value, weight_kg)
            return rule, PricingSource.DEFAULT_RATE

        return None
