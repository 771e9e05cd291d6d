"""
Run a scheduled job once, outside the HTTP server.

Schedule it every few minutes:
    python -m sattrack.scripts.run_dispatch --job dispatch
    python -m sattrack.scripts.run_dispatch --job premium
"""

import argparse
import asyncio
import logging
import sys

from sattrack.config import get_settings
from sattrack.db.session import AsyncSessionLocal, engine
from sattrack.services.directory import build_user_directory
from sattrack.services.dispatch import NotificationDispatcher
from sattrack.services.email import EmailSender
from sattrack.services.premium import PremiumExpiryChecker

logger = logging.getLogger("sattrack.scripts.run_dispatch")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a SAT Tracker batch job once.")
    parser.add_argument(
        "--job",
        choices=["dispatch", "premium"],
        default="dispatch",
        help="dispatch: plan reminders (default); premium: subscription expiry",
    )
    return parser.parse_args(argv)


async def main(job: str) -> None:
    settings = get_settings()
    directory = build_user_directory(AsyncSessionLocal, settings)
    email_sender = EmailSender(settings)

    try:
        if job == "premium":
            summary = await PremiumExpiryChecker(
                AsyncSessionLocal,
                directory,
                email_sender,
                max_email_concurrency=settings.email_max_concurrency,
            ).run()
        else:
            summary = await NotificationDispatcher(
                AsyncSessionLocal,
                directory,
                email_sender,
                max_email_concurrency=settings.email_max_concurrency,
            ).run()
        logger.info("Job %s completed: %s", job, summary)
    finally:
        await engine.dispose()


if __name__ == "__main__":  # pragma: no cover
    args = parse_args()
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("[CRON] %s: job started", args.job)
    try:
        asyncio.run(main(args.job))
    except Exception as e:
        logger.error("[CRON] %s: job failed: %s", args.job, e)
        sys.exit(1)
