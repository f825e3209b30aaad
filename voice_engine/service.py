"""
Async orchestration over the pure engine components.

``VoiceProfileService`` is the "caller" the core components are written for:

- validates raw input (transcript length, user id) before any work starts
- runs the enthusiasm analysis and feature extraction concurrently in
  worker threads
- serializes each user's load-merge-save cycle behind a per-user lock
- persists profiles and calibration rounds through a ``ProfileStore``

Nothing here retries.  A failed aggregation leaves the stored profile as it
was.

Usage::

    store = InMemoryProfileStore()
    service = VoiceProfileService(store)
    outcome = await service.analyze_voice_session("user-1", transcription)
    request = await service.compose_prompt("user-1", transcription.transcript,
                                           enthusiasm=outcome.enthusiasm)
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from voice_engine.analysis.enthusiasm import EnthusiasmAnalyzer
from voice_engine.analysis.linguistic import FeatureExtractor, attach_enthusiasm
from voice_engine.composer import GenerationContext, build_generation_request
from voice_engine.config import Settings, get_settings
from voice_engine.exceptions import (
    AggregationFailedError,
    CalibrationRoundError,
    TranscriptTooShortError,
    ValidationError,
)
from voice_engine.logging import ComponentLogger, LogComponent, get_logger, is_initialized
from voice_engine.models import (
    AggregationResult,
    CalibrationInsight,
    CalibrationRound,
    ContentOutline,
    ContributionKind,
    EnthusiasmAnalysis,
    FeatureContribution,
    FollowUpQuestion,
    FollowUpResponse,
    GenerationRequest,
    ResponseType,
    TranscriptionResult,
    VoiceDNA,
    VoiceDNASummary,
)
from voice_engine.profile.aggregator import ProfileAggregator
from voice_engine.profile.calibration import (
    append_feedback,
    open_round,
    rate_round,
    record_response,
)
from voice_engine.profile.summary import summarize_voice_dna
from voice_engine.referents.blend import BlendResolver, ReferentSelection
from voice_engine.referents.catalog import ReferentCatalog, get_default_catalog
from voice_engine.storage import ProfileStore


# =============================================================================
# PER-USER LOCKS
# =============================================================================


class UserLockRegistry:
    """One ``asyncio.Lock`` per user id; different users never contend."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._locks)


@dataclass
class SessionOutcome:
    """Result of analyzing one voice session."""

    aggregation: AggregationResult
    enthusiasm: EnthusiasmAnalysis
    contribution: FeatureContribution


# =============================================================================
# SERVICE
# =============================================================================


class VoiceProfileService:
    """Entry point for every profile-changing operation."""

    def __init__(
        self,
        store: ProfileStore,
        settings: Optional[Settings] = None,
        analyzer: Optional[EnthusiasmAnalyzer] = None,
        extractor: Optional[FeatureExtractor] = None,
        aggregator: Optional[ProfileAggregator] = None,
        resolver: Optional[BlendResolver] = None,
        catalog: Optional[ReferentCatalog] = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.catalog = catalog or get_default_catalog()
        self.analyzer = analyzer or EnthusiasmAnalyzer(self.settings.enthusiasm)
        self.extractor = extractor or FeatureExtractor(self.settings.features)
        self.aggregator = aggregator or ProfileAggregator(self.settings.aggregator)
        self.resolver = resolver or BlendResolver(self.catalog, self.settings.blend)
        self.locks = UserLockRegistry()
        self.log = ComponentLogger(LogComponent.SERVICE)

    # -----------------------------------------------------------------
    # VALIDATION
    # -----------------------------------------------------------------

    @staticmethod
    def _bind_user(user_id: str) -> None:
        if user_id is None or not str(user_id).strip():
            raise ValidationError("user_id cannot be empty")
        if is_initialized():
            get_logger().set_context(user_id=user_id)

    def _validate_text(self, text: Optional[str], what: str) -> str:
        limits = self.settings.limits
        stripped = (text or "").strip()
        if len(stripped) < limits.transcript_min_length:
            raise TranscriptTooShortError(len(stripped), limits.transcript_min_length)
        if len(stripped) > limits.transcript_max_length:
            raise ValidationError(
                f"{what} too long: {len(stripped)} characters "
                f"(maximum {limits.transcript_max_length})"
            )
        return stripped

    # -----------------------------------------------------------------
    # CONTRIBUTIONS
    # -----------------------------------------------------------------

    async def analyze_voice_session(
        self,
        user_id: str,
        transcription: TranscriptionResult,
        written_samples: Optional[Sequence[str]] = None,
    ) -> SessionOutcome:
        """
        Analyze a transcribed session and merge it into the user's profile.

        Raises:
            TranscriptTooShortError: Transcript below the minimum length.
            MalformedTimestampsError: Timestamps overlap or are out of order.
            AggregationFailedError: Merged profile broke an invariant; nothing
                is saved.
        """
        self._bind_user(user_id)
        transcript = self._validate_text(transcription.transcript, "Transcript")

        async with self.log.timed(
            "Analyzing voice session", words=len(transcription.word_timestamps)
        ):
            enthusiasm, contribution = await asyncio.gather(
                self._in_thread(
                    LogComponent.ENTHUSIASM,
                    "Scoring enthusiasm",
                    self.analyzer.analyze,
                    transcription.word_timestamps,
                    transcript,
                ),
                self._in_thread(
                    LogComponent.FEATURES,
                    "Extracting voice features",
                    self.extractor.extract,
                    transcript,
                    ContributionKind.VOICE_SESSION,
                    written_samples,
                ),
            )
        contribution = attach_enthusiasm(contribution, enthusiasm)

        result = await self._merge_contribution(user_id, contribution)
        return SessionOutcome(
            aggregation=result, enthusiasm=enthusiasm, contribution=contribution
        )

    async def analyze_writing_sample(self, user_id: str, text: str) -> AggregationResult:
        """Extract written-voice features from *text* and merge them."""
        self._bind_user(user_id)
        text = self._validate_text(text, "Writing sample")
        async with self.log.timed("Analyzing writing sample", chars=len(text)):
            contribution = await self._in_thread(
                LogComponent.FEATURES,
                "Extracting written features",
                self.extractor.extract,
                text,
                ContributionKind.WRITING_SAMPLE,
            )
        return await self._merge_contribution(user_id, contribution)

    @staticmethod
    async def _in_thread(component: LogComponent, operation: str, func, *args):
        async with ComponentLogger(component).timed(operation):
            return await asyncio.to_thread(func, *args)

    async def _aggregate(
        self,
        existing: Optional[VoiceDNA],
        contribution: Optional[FeatureContribution] = None,
        calibration: Optional[CalibrationRound] = None,
    ) -> AggregationResult:
        try:
            result = self.aggregator.aggregate(existing, contribution, calibration)
        except AggregationFailedError as e:
            await ComponentLogger(LogComponent.AGGREGATOR).error(
                "Merge rejected, profile left unchanged",
                error=e,
                data={"violations": e.violations},
            )
            raise
        await ComponentLogger(LogComponent.AGGREGATOR).debug(
            "Profile merged",
            data={
                "rules": len(result.profile.learned_rules),
                "score_change": result.calibration_score_change,
            },
        )
        return result

    async def _merge_contribution(
        self, user_id: str, contribution: FeatureContribution
    ) -> AggregationResult:
        async with self.locks.lock_for(user_id):
            existing = await self.store.get_profile(user_id)
            result = await self._aggregate(existing, contribution)
            await self.store.save_profile(user_id, result.profile)
        await self.log.info(
            "Profile updated",
            data={
                "kind": contribution.kind.value,
                "is_new": result.is_new_profile,
                "score": result.profile.calibration_score,
                "score_change": result.calibration_score_change,
            },
        )
        return result

    # -----------------------------------------------------------------
    # CALIBRATION ROUNDS
    # -----------------------------------------------------------------

    async def _find_round(self, user_id: str, round_number: int) -> CalibrationRound:
        for round_ in await self.store.list_calibration_rounds(user_id):
            if round_.round_number == round_number:
                return round_
        raise CalibrationRoundError(
            f"No calibration round {round_number} for user '{user_id}'"
        )

    async def start_calibration_round(
        self, user_id: str, prompt_text: Optional[str] = None
    ) -> CalibrationRound:
        """
        Open a new round, or return the one still waiting for a rating.

        Without *prompt_text* the round gets the default prompt for its number.
        """
        self._bind_user(user_id)
        async with self.locks.lock_for(user_id):
            rounds = await self.store.list_calibration_rounds(user_id)
            round_ = open_round(rounds, prompt_text)
            if all(r.round_number != round_.round_number for r in rounds):
                await self.store.save_calibration_round(user_id, round_)
                await self.log.info(
                    "Calibration round opened", data={"round": round_.round_number}
                )
        return round_

    async def record_calibration_response(
        self,
        user_id: str,
        round_number: int,
        response: Optional[str],
        response_type: ResponseType = ResponseType.TEXT,
        generated_sample: Optional[str] = None,
    ) -> CalibrationRound:
        self._bind_user(user_id)
        async with self.locks.lock_for(user_id):
            round_ = await self._find_round(user_id, round_number)
            updated = record_response(round_, response, response_type, generated_sample)
            await self.store.save_calibration_round(user_id, updated)
        return updated

    async def record_calibration_feedback(
        self,
        user_id: str,
        round_number: int,
        rating: int,
        insights: Sequence[CalibrationInsight] = (),
        feedback_text: Optional[str] = None,
        feedback_transcript: Optional[str] = None,
    ) -> AggregationResult:
        """
        Rate a round and fold its insights into the profile as learned rules.

        The profile is saved before the rated round, so a failed aggregation
        leaves the round open for another attempt.  The profile records the
        ids of applied rounds, so retrying after a failed round write does
        not apply the same insights twice.
        """
        self._bind_user(user_id)
        async with self.locks.lock_for(user_id):
            round_ = await self._find_round(user_id, round_number)
            rated = rate_round(
                round_,
                rating,
                insights,
                feedback_text=feedback_text,
                feedback_transcript=feedback_transcript,
                limits=self.settings.limits,
            )
            existing = await self.store.get_profile(user_id)
            result = await self._aggregate(existing, calibration=rated)
            await self.store.save_profile(user_id, result.profile)
            await self.store.save_calibration_round(user_id, rated)

        log = ComponentLogger(LogComponent.CALIBRATION)
        await log.info(
            "Calibration round rated",
            data={
                "round": round_number,
                "rating": rating,
                "insights": len(rated.insights_extracted),
                "score": result.profile.calibration_score,
            },
        )
        return result

    async def append_calibration_feedback(
        self,
        user_id: str,
        round_number: int,
        feedback_text: Optional[str] = None,
        feedback_transcript: Optional[str] = None,
    ) -> CalibrationRound:
        self._bind_user(user_id)
        async with self.locks.lock_for(user_id):
            round_ = await self._find_round(user_id, round_number)
            updated = append_feedback(round_, feedback_text, feedback_transcript)
            await self.store.save_calibration_round(user_id, updated)
        return updated

    async def list_calibration_rounds(self, user_id: str) -> List[CalibrationRound]:
        self._bind_user(user_id)
        return await self.store.list_calibration_rounds(user_id)

    # -----------------------------------------------------------------
    # REFERENTS
    # -----------------------------------------------------------------

    async def update_referent_influences(
        self, user_id: str, selections: Sequence[ReferentSelection]
    ) -> AggregationResult:
        """Resolve *selections* into a blend and store it on the profile."""
        self._bind_user(user_id)
        influences = self.resolver.resolve(selections)
        async with self.locks.lock_for(user_id):
            existing = await self.store.get_profile(user_id)
            result = self.aggregator.apply_referent_influences(existing, influences)
            await self.store.save_profile(user_id, result.profile)

        log = ComponentLogger(LogComponent.BLEND)
        await log.info(
            "Referent blend updated",
            data={
                "user_weight": influences.user_weight,
                "referents": {r.referent_id: r.weight for r in influences.referents},
            },
        )
        return result

    # -----------------------------------------------------------------
    # GENERATION
    # -----------------------------------------------------------------

    async def compose_prompt(
        self,
        user_id: str,
        transcript: str,
        enthusiasm: Optional[EnthusiasmAnalysis] = None,
        outline: Optional[ContentOutline] = None,
        follow_up_responses: Sequence[FollowUpResponse] = (),
        follow_up_questions: Sequence[FollowUpQuestion] = (),
    ) -> GenerationRequest:
        """
        Build the generation request for *transcript* in the user's voice.

        Raises:
            ComposerInputIncompleteError: No profile exists yet, the
                transcript is blank, or a stored referent is unknown.
        """
        self._bind_user(user_id)
        profile = await self.store.get_profile(user_id)
        context = GenerationContext(
            voice_dna=profile,
            original_transcript=transcript,
            enthusiasm_analysis=enthusiasm,
            content_outline=outline,
            follow_up_responses=list(follow_up_responses),
            follow_up_questions=list(follow_up_questions),
        )
        request = build_generation_request(context, self.catalog)
        await ComponentLogger(LogComponent.COMPOSER).debug(
            "Generation prompt composed", data={"chars": len(request.prompt)}
        )
        return request

    # -----------------------------------------------------------------
    # MAINTENANCE / READ
    # -----------------------------------------------------------------

    async def rebuild_calibration(self, user_id: str) -> AggregationResult:
        """
        Corrective recompute of one user's score (may lower it).

        Raises:
            ValidationError: If the user has no profile.
        """
        self._bind_user(user_id)
        async with self.locks.lock_for(user_id):
            existing = await self.store.get_profile(user_id)
            if existing is None:
                raise ValidationError(f"No profile stored for user '{user_id}'")
            result = self.aggregator.recompute_calibration(existing)
            await self.store.save_profile(user_id, result.profile)
        return result

    async def recalculate_all(self) -> Dict[str, Tuple[int, int]]:
        """Recompute every stored profile; returns ``{user_id: (old, new)}``."""
        changes: Dict[str, Tuple[int, int]] = {}
        for user_id in await self.store.list_user_ids():
            result = await self.rebuild_calibration(user_id)
            new = result.profile.calibration_score
            changes[user_id] = (new - result.calibration_score_change, new)
        await self.log.info("Recalculated calibration scores", data={"users": len(changes)})
        return changes

    async def get_summary(self, user_id: str) -> Optional[VoiceDNASummary]:
        """Display summary, or ``None`` when the user has no profile."""
        self._bind_user(user_id)
        profile = await self.store.get_profile(user_id)
        if profile is None:
            return None
        return summarize_voice_dna(profile, self.settings.aggregator)


__all__ = [
    "VoiceProfileService",
    "UserLockRegistry",
    "SessionOutcome",
]
