"""
Recompute the calibration score of every stored profile.

Corrective maintenance: unlike regular aggregation this may lower a score,
e.g. after the scoring parameters in ``config/settings.yaml`` change.

Usage::

    python recalculate_scores.py            # all users
    python recalculate_scores.py --user u1  # one user
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("recalculate_scores")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Recompute Voice DNA calibration scores")
    parser.add_argument("--user", help="Only recompute this user id")
    args = parser.parse_args()

    from voice_engine.config import get_settings, validate_env
    from voice_engine.logging import ComponentLogger, LogComponent, LogLevel, init_logger
    from voice_engine.service import VoiceProfileService
    from voice_engine.storage import get_store

    settings = get_settings()
    validate_env(settings)
    init_logger(log_dir=settings.log_dir, min_level=LogLevel.from_name(settings.log_level))
    await ComponentLogger(LogComponent.STARTUP).info(
        "Score recalculation started",
        data={"backend": settings.storage_backend, "log_level": settings.log_level},
    )

    store = await get_store(settings)
    service = VoiceProfileService(store, settings)

    if args.user:
        result = await service.rebuild_calibration(args.user)
        new = result.profile.calibration_score
        changes = {args.user: (new - result.calibration_score_change, new)}
    else:
        changes = await service.recalculate_all()

    if not changes:
        logger.warning("No stored profiles found. Nothing to do.")
        return

    for user_id, (old, new) in sorted(changes.items()):
        logger.info("%s: %d -> %d (%+d)", user_id, old, new, new - old)
    logger.info("Done. %d profiles recalculated.", len(changes))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(0)
