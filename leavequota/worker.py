"""Worker process for the periodic self-healing sweep.

Re-derives the quota fields of every tenant's leave records at a fixed
interval, so drift left behind by failed writes or policy edits is repaired
even when nobody reads the records.
"""

from __future__ import annotations

import asyncio
import logging

from leavequota.config import get_settings
from leavequota.db import session_scope

logger = logging.getLogger(__name__)


async def run_sweep_once() -> None:
    """Sweep every tenant once and log the outcome."""
    from leavequota.services.leave import run_recompute_sweep

    try:
        async with session_scope() as session:
            result = await run_recompute_sweep(session)
        logger.info(
            "Recompute sweep complete: tenants=%d records=%d healed=%d errors=%d",
            result.tenants,
            result.records,
            result.healed,
            result.errors,
        )
    except Exception:
        logger.exception("Recompute sweep failed")


async def run_sweep_loop() -> None:
    """Main worker loop."""
    interval = get_settings().sweep_interval_seconds
    logger.info("Recompute worker started, interval=%ds", interval)

    while True:
        await run_sweep_once()
        await asyncio.sleep(interval)


def main() -> None:
    """Entry point for the worker process."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(run_sweep_loop())


if __name__ == "__main__":
    main()
