"""
Database seeding script for default pricing.

Creates an ADMIN user and the default air weight tiers and sea rate as
PricingRule rows. Safe to run more than once.
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from freight_backend.app.db.session import AsyncSessionLocal, engine, Base
from freight_backend.app.models.user import User
from freight_backend.app.models.enums import UserRole
from freight_backend.app.models.pricing_rule import PricingRule
from freight_backend.app.models.shipment_enums import TransportMode
from sqlalchemy import select

# (min kg, max kg, USD per kg). Bands share their boundary weight; the
# narrower band wins there, so each boundary keeps the lower band's rate.
DEFAULT_AIR_TIERS = [
    (Decimal("0"), Decimal("100"), Decimal("13.50")),
    (Decimal("100"), Decimal("300"), Decimal("11.50")),
    (Decimal("300"), Decimal("600"), Decimal("10.80")),
    (Decimal("600"), Decimal("1000"), Decimal("10.50")),
    (Decimal("1000"), Decimal("1500"), Decimal("10.00")),
    (Decimal("1500"), None, Decimal("9.80")),
]

DEFAULT_SEA_USD_PER_CBM = Decimal("550.00")


def tier_name(min_kg, max_kg) -> str:
    if max_kg is None:
        return f"Air {min_kg}kg+"
    return f"Air {min_kg}-{max_kg}kg"


async def seed_pricing():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting pricing seeding...")

        result = await db.execute(select(User).where(User.username == "admin"))
        admin = result.scalar_one_or_none()

        if admin:
            print("ℹ️  ADMIN user already exists")
        else:
            admin = User(
                email="admin@freight.local",
                username="admin",
                full_name="Pricing Administrator",
                role=UserRole.ADMIN,
                is_active=True,
            )
            db.add(admin)
            await db.flush()
            print("✅ Created ADMIN user (username: admin)")

        result = await db.execute(select(PricingRule.name))
        existing = set(result.scalars().all())

        created = 0
        for min_kg, max_kg, rate in DEFAULT_AIR_TIERS:
            name = tier_name(min_kg, max_kg)
            if name in existing:
                continue
            db.add(PricingRule(
                name=name,
                transport_mode=TransportMode.AIR,
                min_weight_kg=min_kg,
                max_weight_kg=max_kg,
                rate_usd_per_kg=rate,
                is_active=True,
                created_by=admin.id,
            ))
            created += 1

        if "Sea standard" not in existing:
            db.add(PricingRule(
                name="Sea standard",
                transport_mode=TransportMode.SEA,
                flat_rate_usd_per_cbm=DEFAULT_SEA_USD_PER_CBM,
                is_active=True,
                created_by=admin.id,
            ))
            created += 1

        await db.commit()
        print(f"✅ Created {created} pricing rule(s)")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_pricing())
