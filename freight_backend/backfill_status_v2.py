"""
Status backfill runner.

    python -m freight_backend.backfill_status_v2

Maps legacy statuses onto the fine-grained status model for every row
that does not have one yet. Rows that need a transport mode but have none
are flagged for admin review; set their mode and re-run.

Exit code is non-zero only when some rows failed with an error.
"""

import asyncio
import logging
import sys

from freight_backend.app.core.observability import configure_logging
from freight_backend.app.db.session import AsyncSessionLocal, engine
from freight_backend.app.services.backfill import StatusBackfill

logger = logging.getLogger("freight_backend.backfill_status_v2")


async def run() -> int:
    try:
        report = await StatusBackfill(AsyncSessionLocal).run()
    finally:
        await engine.dispose()

    for line in report.summary_lines():
        print(line)

    if report.exit_code:
        logger.error("Backfill finished with %d errored row(s)", report.totals.errored)
    return report.exit_code


def main() -> None:
    configure_logging()
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
