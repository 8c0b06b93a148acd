"""
Rate rule cache.

Read-through cache of active pricing rules and customer overrides, keyed
by mode (and customer). The application lifespan owns one instance and
drives its lifecycle; tests build their own.
"""

import logging
import time
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from freight_backend.app.domain.billing.pricing_resolver import RateRule
from freight_backend.app.models.pricing_rule import PricingRule, CustomerPricingOverride
from freight_backend.app.models.shipment_enums import TransportMode

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Optional[int], TransportMode]


class RateCache:
    """
    Lifecycle:
        initialize() before first use (application startup)
        invalidate() after any rule or override mutation
        teardown() on shutdown
    """

    def __init__(self, ttl_seconds: int = 300):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[CacheKey, Tuple[float, List[RateRule]]] = {}
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        self._entries = {}
        self._ready = True
        logger.info("Rate cache initialized (ttl=%ss)", self.ttl_seconds)

    def invalidate(self) -> None:
        self._entries.clear()
        logger.info("Rate cache invalidated")

    def teardown(self) -> None:
        self._entries.clear()
        self._ready = False
        logger.info("Rate cache torn down")

    def _get(self, key: CacheKey) -> Optional[List[RateRule]]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, rules = entry
        if time.monotonic() > expires_at:
            del self._entries[key]
            return None

        return rules

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]

    def _set(self, key: CacheKey, rules: List[RateRule]) -> None:
        now = time.monotonic()
        self._sweep(now)
        self._entries[key] = (now + self.ttl_seconds, rules)

    def _require_ready(self) -> None:
        if not self._ready:
            raise RuntimeError("RateCache used before initialize()")

    async def default_rules(self, db: AsyncSession, mode: TransportMode) -> List[RateRule]:
        self._require_ready()
        key: CacheKey = ("default", None, mode)

        rules = self._get(key)
        if rules is None:
            result = await db.execute(
                select(PricingRule).where(
                    PricingRule.transport_mode == mode,
                    PricingRule.is_active == True,
                )
            )
            rules = [RateRule.from_row(row) for row in result.scalars().all()]
            self._set(key, rules)

        return rules

    async def customer_overrides(self, db: AsyncSession, customer_id: int, mode: TransportMode) -> List[RateRule]:
        self._require_ready()
        key: CacheKey = ("override", customer_id, mode)

        rules = self._get(key)
        if rules is None:
            result = await db.execute(
                select(CustomerPricingOverride).where(
                    CustomerPricingOverride.customer_id == customer_id,
                    CustomerPricingOverride.transport_mode == mode,
                    CustomerPricingOverride.is_active == True,
                )
            )
            rules = [RateRule.from_row(row) for row in result.scalars().all()]
            self._set(key, rules)

        return rules
