"""Run one maintenance job, for cron.

Suggested crontab:
    0 3 * * *  python scripts/run_job.py purge-tokens
    0 10 * * * python scripts/run_job.py unread-reminders
    0 2 * * *  python scripts/run_job.py reminders-24h
    0 * * * *  python scripts/run_job.py reminders-2h
"""
import argparse
import asyncio
import sys

from coachdesk.config import get_settings
from coachdesk.database import close_db
from coachdesk.logging_config import configure_logging, get_logger
from coachdesk.maintenance import JOBS

logger = get_logger("coachdesk.jobs")


async def run(name: str) -> None:
    try:
        result = await JOBS[name]()
        logger.info("Job %s finished", name, extra={"result": result})
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a CoachDesk maintenance job")
    parser.add_argument("job", choices=sorted(JOBS))
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    try:
        asyncio.run(run(args.job))
    except Exception:
        logger.exception("Job %s failed", args.job)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
