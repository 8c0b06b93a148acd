"""
Status backfill.

Populates the fine-grained status on rows that only carry a legacy
status. Handles solo shipments, bulk parents and bulk items, one commit
per row, so the job can be interrupted and re-run.

Per row:
- mode-dependent legacy value and no known mode -> flag for admin review
- legacy value that does not map -> flag for admin review
- otherwise set status (and customer status); rows with no final charge
  are tagged MIGRATED_UNVERIFIED
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from freight_backend.app.domain.shipment_status.mapping import MODE_DEPENDENT_LEGACY, legacy_to_status
from freight_backend.app.models.bulk_shipment import BulkShipment
from freight_backend.app.models.bulk_shipment_item import BulkShipmentItem
from freight_backend.app.models.shipment import Shipment
from freight_backend.app.models.shipment_enums import PricingSource, TransportMode
from freight_backend.app.services.audit import AuditAction, log_event

logger = logging.getLogger(__name__)

MAPPED = "mapped"
FLAGGED = "flagged"


@dataclass
class TableReport:
    mapped: int = 0
    flagged: int = 0
    errored: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"mapped": self.mapped, "flagged": self.flagged, "errored": self.errored}


@dataclass
class BackfillReport:
    tables: Dict[str, TableReport] = field(default_factory=dict)

    def table(self, name: str) -> TableReport:
        return self.tables.setdefault(name, TableReport())

    @property
    def totals(self) -> TableReport:
        total = TableReport()
        for report in self.tables.values():
            total.mapped += report.mapped
            total.flagged += report.flagged
            total.errored += report.errored
        return total

    @property
    def exit_code(self) -> int:
        return 1 if self.totals.errored else 0

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        data = {name: report.as_dict() for name, report in self.tables.items()}
        data["totals"] = self.totals.as_dict()
        return data

    def summary_lines(self) -> List[str]:
        lines = [
            f"{name:<22} mapped={r.mapped:<6} flagged={r.flagged:<6} errored={r.errored}"
            for name, r in self.tables.items()
        ]
        t = self.totals
        lines.append(f"{'TOTAL':<22} mapped={t.mapped:<6} flagged={t.flagged:<6} errored={t.errored}")
        return lines


def map_row(row, mode: Optional[TransportMode], has_customer_status: bool = True) -> str:
    """
    Apply the legacy mapping to one row in place.

    Returns MAPPED or FLAGGED. The fine-grained status is left untouched
    on flagged rows.
    """
    legacy = row.legacy_status

    if legacy is None:
        row.flagged_for_admin_review = True
        return FLAGGED

    if legacy in MODE_DEPENDENT_LEGACY and mode is None:
        row.flagged_for_admin_review = True
        return FLAGGED

    status = legacy_to_status(legacy, mode)
    if status is None:
        row.flagged_for_admin_review = True
        return FLAGGED

    if has_customer_status:
        row.apply_status(status)
        if row.final_charge_usd is None:
            row.pricing_source = PricingSource.MIGRATED_UNVERIFIED
    else:
        row.status = status
    return MAPPED


class StatusBackfill:

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    async def _pending_ids(db: AsyncSession, model) -> List[int]:
        result = await db.execute(
            select(model.id)
            .where(model.status.is_(None), model.deleted_at.is_(None))
            .order_by(model.id)
        )
        return list(result.scalars().all())

    async def _process(self, db: AsyncSession, table: str, model, row_id: int, report: TableReport) -> None:
        try:
            row = await db.get(model, row_id)
            if row is None or row.status is not None:
                return

            if model is BulkShipmentItem:
                mode = row.transport_mode
                if mode is None:
                    parent = await db.get(BulkShipment, row.bulk_shipment_id)
                    mode = parent.transport_mode if parent else None
                outcome = map_row(row, mode)
            elif model is BulkShipment:
                outcome = map_row(row, row.transport_mode, has_customer_status=False)
            else:
                outcome = map_row(row, row.transport_mode)

            await db.commit()
        except Exception:
            await db.rollback()
            report.errored += 1
            logger.exception("Backfill failed for %s %s", table, row_id)
            return

        if outcome == MAPPED:
            report.mapped += 1
        else:
            report.flagged += 1
            logger.warning("Backfill flagged %s %s for admin review", table, row_id)

    async def run(self, actor_id: Optional[int] = None) -> BackfillReport:
        report = BackfillReport()

        async with self.session_factory() as db:
            for table, model in (
                ("shipments", Shipment),
                ("bulk_shipments", BulkShipment),
                ("bulk_shipment_items", BulkShipmentItem),
            ):
                table_report = report.table(table)
                for row_id in await self._pending_ids(db, model):
                    await self._process(db, table, model, row_id, table_report)

                logger.info(
                    "Backfill %s: mapped=%d flagged=%d errored=%d",
                    table, table_report.mapped, table_report.flagged, table_report.errored,
                )

            await log_event(
                db,
                AuditAction.STATUS_BACKFILL_RUN,
                actor_id=actor_id,
                metadata=report.as_dict(),
            )

        return report
