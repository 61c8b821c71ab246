"""Roll every wallet whose billing cycle has ended into a fresh cycle.

Run from a scheduler (cron, k8s CronJob) at least daily:

    python -m scripts.roll_wallet_cycles
"""

import asyncio

import structlog

from ghoste.core.config import get_settings
from ghoste.core.logging import configure_structlog
from ghoste.credits.ledger import SqlLedger
from ghoste.db import close_db, get_session_factory, init_db

logger = structlog.get_logger(__name__)


async def main() -> None:
    settings = get_settings()
    configure_structlog(log_level="DEBUG" if settings.debug else "INFO", json_logs=not settings.debug)

    await init_db(create_tables=False)
    try:
        reset_count = await SqlLedger(get_session_factory()).roll_expired_cycles()
    finally:
        await close_db()

    logger.info("wallet_cycles_rolled", reset_count=reset_count)
    print(f"Reset {reset_count} wallet cycle(s).")


if __name__ == "__main__":
    asyncio.run(main())
