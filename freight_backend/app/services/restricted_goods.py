"""
Restricted goods catalog and package screening.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from freight_backend.app.core.exceptions import ShipmentValidationError
from freight_backend.app.models.restricted_good import RestrictedGood


def normalize_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    code = code.strip().lower()
    return code or None


async def list_restricted_goods(db: AsyncSession, include_inactive: bool = False) -> List[RestrictedGood]:
    query = select(RestrictedGood).order_by(RestrictedGood.code)
    if not include_inactive:
        query = query.where(RestrictedGood.is_active == True)

    result = await db.execute(query)
    return result.scalars().all()


async def create_restricted_good(
    db: AsyncSession,
    code: str,
    name: str,
    description: Optional[str] = None,
    allow_with_override: bool = True,
    is_active: bool = True,
) -> RestrictedGood:
    """Stage a new catalog entry; the caller commits."""
    normalized = normalize_code(code)
    if normalized is None:
        raise ShipmentValidationError("Restricted good code must not be blank")

    existing = await db.execute(select(RestrictedGood).where(RestrictedGood.code == normalized))
    if existing.scalar_one_or_none():
        raise ShipmentValidationError(
            f"Restricted good '{normalized}' already exists",
            details={"code": normalized},
        )

    good = RestrictedGood(
        code=normalized,
        name=name,
        description=description,
        allow_with_override=allow_with_override,
        is_active=is_active,
    )
    db.add(good)
    await db.flush()
    return good


async def load_catalog(db: AsyncSession, codes: Iterable[Optional[str]]) -> Dict[str, RestrictedGood]:
    """Active catalog entries for the given item types, keyed by code."""
    wanted = {c for c in (normalize_code(code) for code in codes) if c}
    if not wanted:
        return {}

    result = await db.execute(
        select(RestrictedGood).where(
            RestrictedGood.code.in_(wanted),
            RestrictedGood.is_active == True,
        )
    )
    return {good.code: good for good in result.scalars().all()}


@dataclass
class ScreeningResult:
    is_restricted: bool
    reason: Optional[str]
    override_allowed: bool
    override_approved: bool

    @property
    def blocked(self) -> bool:
        return self.is_restricted and not self.override_approved


def screen_package(
    item_type: Optional[str],
    catalog: Dict[str, RestrictedGood],
    flagged_restricted: bool = False,
    flagged_reason: Optional[str] = None,
    override_requested: bool = False,
) -> ScreeningResult:
    """
    Decide whether one package is restricted and whether its override stands.

    A package is restricted when staff flagged it or its item type is an
    active catalog entry. Entries that disallow overrides stay blocked
    even if an override was requested.
    """
    good = catalog.get(normalize_code(item_type) or "")

    is_restricted = flagged_restricted or good is not None
    reason = flagged_reason
    if good is not None and not reason:
        reason = f"Restricted item type: {good.name}"

    override_allowed = good.allow_with_override if good is not None else True
    override_approved = is_restricted and override_requested and override_allowed

    return ScreeningResult(
        is_restricted=is_restricted,
        reason=reason,
        override_allowed=override_allowed,
        override_approved=override_approved,
    )
