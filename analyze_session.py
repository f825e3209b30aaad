"""
Analyze one transcribed voice session and print the resulting profile.

Usage::

    # Analyze a transcription JSON file ({transcript, word_timestamps, ...}):
    python analyze_session.py data/session.json

    # Add writing samples and a referent blend, then print the prompt:
    python analyze_session.py data/session.json --writing post1.md --writing post2.md \\
        --referent seth-godin=30 --referent james-clear=20 --prompt

    # Store into the configured backend under a specific user id:
    python analyze_session.py data/session.json --user user-123
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("analyze_session")


def _parse_referent(value: str):
    from voice_engine.referents import ReferentSelection

    name, sep, weight = value.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"Expected ID=WEIGHT, got '{value}'")
    try:
        return ReferentSelection(referent=name.strip(), weight=int(weight))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Weight must be an integer, got '{weight}'") from None


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Analyze a transcribed voice session into a Voice DNA profile"
    )
    parser.add_argument("transcription", help="Transcription JSON file")
    parser.add_argument("--user", default="local", help="User id (default: local)")
    parser.add_argument(
        "--writing",
        metavar="FILE",
        action="append",
        default=[],
        help="Writing sample to analyze after the session (repeatable)",
    )
    parser.add_argument(
        "--referent",
        metavar="ID=WEIGHT",
        type=_parse_referent,
        action="append",
        default=[],
        help="Referent influence, e.g. seth-godin=30 (repeatable)",
    )
    parser.add_argument(
        "--prompt",
        action="store_true",
        help="Also print the generation prompt for the session transcript",
    )
    args = parser.parse_args()

    from voice_engine.config import get_settings, validate_env
    from voice_engine.logging import ComponentLogger, LogComponent, LogLevel, init_logger
    from voice_engine.models import TranscriptionResult
    from voice_engine.service import VoiceProfileService
    from voice_engine.storage import get_store

    settings = get_settings()
    validate_env(settings)
    logging.getLogger().setLevel(settings.log_level)
    init_logger(log_dir=settings.log_dir, min_level=LogLevel.from_name(settings.log_level))
    await ComponentLogger(LogComponent.STARTUP).info(
        "Session analysis started",
        data={"backend": settings.storage_backend, "log_level": settings.log_level},
    )

    with open(args.transcription, "r", encoding="utf-8") as fh:
        transcription = TranscriptionResult.from_dict(json.load(fh))
    samples: List[str] = [Path(p).read_text(encoding="utf-8") for p in args.writing]

    store = await get_store(settings)
    service = VoiceProfileService(store, settings)

    outcome = await service.analyze_voice_session(args.user, transcription)
    logger.info(
        "Session analyzed: energy=%.2f, %d segments, %d peaks",
        outcome.enthusiasm.overall_energy,
        len(outcome.enthusiasm.segments),
        len(outcome.enthusiasm.peak_moments),
    )
    for sample in samples:
        await service.analyze_writing_sample(args.user, sample)
    if args.referent:
        await service.update_referent_influences(args.user, args.referent)

    summary = await service.get_summary(args.user)
    profile = await store.get_profile(args.user)
    print(json.dumps(
        {
            "summary": summary.to_dict() if summary else None,
            "calibration_score": profile.calibration_score if profile else 0,
        },
        indent=2,
    ))

    if args.prompt:
        request = await service.compose_prompt(
            args.user, transcription.transcript, enthusiasm=outcome.enthusiasm
        )
        print("\n=== SYSTEM PROMPT ===\n")
        print(request.system_prompt)
        print("\n=== PROMPT ===\n")
        print(request.prompt)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(0)
