"""
Profile Aggregator (Voice DNA Builder).

Merges one feature contribution and/or one rated calibration round into a
user's ``VoiceDNA`` and recomputes the calibration score.

Merge rules:

1. No existing profile: the contribution becomes the profile as is.
2. Scalars (formality, tonal attributes, energy baseline) follow a capped
   running average ``(old * w_old + new) / (w_old + 1)`` with
   ``w_old = min(prior_count, prior_weight_cap)``.
3. Word frequencies accumulate, signature phrases, fillers and topics are
   unioned and never dropped.
4. Categorical fields are majority votes over all contributions; a tie
   goes to the value voted most recently.
5. Counters increase by one per contributing event.
6. Insights of a rated calibration round are appended to ``learned_rules``,
   keeping at most ``max_learned_rules`` (oldest dropped first).  A round
   whose id is already recorded on the profile is not applied again.
7. Under normal operation the stored score is ``max(previous, computed)``.
   Only ``recompute_calibration`` may lower it.

The aggregator is pure with respect to its inputs: the existing profile is
deep-copied and never mutated.  Per-user serialization is the caller's job.
"""

import copy
import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime
from difflib import SequenceMatcher
from typing import Dict, List, Optional

from voice_engine.config import AggregatorConfig
from voice_engine.exceptions import (
    AggregationFailedError,
    CalibrationRoundError,
    ValidationError,
)
from voice_engine.models import (
    CATEGORICAL_FIELDS,
    TONAL_ATTRIBUTE_NAMES,
    AggregationResult,
    CalibrationRound,
    CategoryVote,
    ClosingStyle,
    ContributionKind,
    EnthusiasmPattern,
    FeatureContribution,
    LearnedRule,
    LengthBucket,
    OpeningStyle,
    PaceVariation,
    ProfileState,
    ReferentInfluences,
    Rhetoric,
    Rhythm,
    SpokenPatterns,
    StorytellingStyle,
    StructurePreference,
    Vocabulary,
    VoiceDNA,
    WrittenPatterns,
)
from voice_engine.profile.calibration import (
    compute_calibration_score,
    insights_to_rules,
)
from voice_engine.utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

_SCALAR_TOLERANCE = 1e-9


def running_average(old: float, incoming: float, prior_count: int, cap: int) -> float:
    """Capped confidence-weighted running average of a scalar attribute."""
    w_old = min(prior_count, cap)
    return (old * w_old + incoming) / (w_old + 1)


def _union(existing: List[str], incoming: List[str]) -> List[str]:
    merged = list(existing)
    merged.extend(item for item in incoming if item not in existing)
    return list(dict.fromkeys(merged))


def _rank_words(frequencies: Dict[str, int]) -> List[str]:
    return [w for w, _ in sorted(frequencies.items(), key=lambda item: (-item[1], item[0]))]


def derive_state(
    profile: Optional[VoiceDNA], config: Optional[AggregatorConfig] = None
) -> ProfileState:
    """
    Lifecycle state of *profile*, computed from its counters and score.

    ``NONE`` until the first contribution, ``CALIBRATED`` once the score
    reaches the calibrated threshold, ``NASCENT`` in between.
    """
    config = config or AggregatorConfig()
    if profile is None or profile.total_contributions == 0:
        return ProfileState.NONE
    if profile.calibration_score >= config.calibrated_threshold:
        return ProfileState.CALIBRATED
    return ProfileState.NASCENT


class ProfileAggregator:
    """
    Builds and updates Voice DNA profiles.

    Usage::

        aggregator = ProfileAggregator()
        result = aggregator.aggregate(existing_profile, contribution)
        if result.is_new_profile:
            ...
    """

    def __init__(self, config: Optional[AggregatorConfig] = None) -> None:
        self.config = config or AggregatorConfig()

    # -----------------------------------------------------------------
    # PUBLIC OPERATIONS
    # -----------------------------------------------------------------

    def aggregate(
        self,
        existing: Optional[VoiceDNA],
        contribution: Optional[FeatureContribution] = None,
        calibration: Optional[CalibrationRound] = None,
        now: Optional[datetime] = None,
    ) -> AggregationResult:
        """
        Merge a contribution and/or a rated calibration round.

        Args:
            existing: Current profile snapshot, or ``None`` for a new user.
            contribution: Features of one voice session or writing sample.
            calibration: A rated calibration round whose insights become
                learned rules.
            now: Clock override (tests, backfills).

        Raises:
            ValidationError: If neither a contribution nor a round is given.
            CalibrationRoundError: If the round has not been rated.
            AggregationFailedError: If the merged profile breaks an invariant.
        """
        if contribution is None and calibration is None:
            raise ValidationError("aggregate() needs a contribution or a calibration round")
        if calibration is not None and not calibration.is_rated:
            raise CalibrationRoundError(
                f"Round {calibration.round_number} must be rated before it is aggregated"
            )

        now = ensure_utc(now or utc_now())
        old_score = existing.calibration_score if existing is not None else 0

        if existing is None:
            profile = (
                self._profile_from(contribution)
                if contribution is not None
                else VoiceDNA(created_at=now, updated_at=now)
            )
            is_new = True
        else:
            profile = copy.deepcopy(existing)
            if contribution is not None:
                self._merge(profile, contribution)
            is_new = False

        if calibration is not None:
            self._apply_calibration(profile, calibration, now)

        computed = compute_calibration_score(profile, now, self.config)
        profile.calibration_score = max(old_score, computed)
        profile.updated_at = now

        self._check_invariants(profile, existing, corrective=False)

        change = profile.calibration_score - old_score
        logger.info(
            "Aggregated %s (new=%s): score %d -> %d",
            contribution.kind.value if contribution is not None else "calibration round",
            is_new,
            old_score,
            profile.calibration_score,
        )
        return AggregationResult(
            profile=profile,
            is_new_profile=is_new,
            calibration_score_change=change,
        )

    def recompute_calibration(
        self, existing: VoiceDNA, now: Optional[datetime] = None
    ) -> AggregationResult:
        """
        Corrective recompute: store the raw score even if it is lower.

        Used after scoring changes or for admin resets.  Nothing else about
        the profile changes.
        """
        now = ensure_utc(now or utc_now())
        profile = copy.deepcopy(existing)
        profile.calibration_score = compute_calibration_score(profile, now, self.config)
        profile.updated_at = now
        self._check_invariants(profile, existing, corrective=True)
        return AggregationResult(
            profile=profile,
            is_new_profile=False,
            calibration_score_change=profile.calibration_score - existing.calibration_score,
        )

    def apply_referent_influences(
        self,
        existing: Optional[VoiceDNA],
        influences: ReferentInfluences,
        now: Optional[datetime] = None,
    ) -> AggregationResult:
        """
        Store a resolved blend on a (possibly new) profile.

        Not a contributing event: counters and score stay as they are.
        """
        now = ensure_utc(now or utc_now())
        if existing is None:
            profile = VoiceDNA(created_at=now, updated_at=now)
        else:
            profile = copy.deepcopy(existing)
        profile.referent_influences = copy.deepcopy(influences)
        profile.updated_at = now
        self._check_invariants(profile, existing, corrective=False)
        return AggregationResult(
            profile=profile,
            is_new_profile=existing is None,
            calibration_score_change=0,
        )

    # -----------------------------------------------------------------
    # BUILD / MERGE
    # -----------------------------------------------------------------

    def _profile_from(self, c: FeatureContribution) -> VoiceDNA:
        """First contribution: copy it into a fresh profile."""
        profile = VoiceDNA(
            spoken_patterns=SpokenPatterns(
                rhythm=Rhythm(
                    avg_sentence_length=c.avg_sentence_length,
                    pace_variation=c.pace_variation,
                ),
                rhetoric=Rhetoric(
                    uses_questions=c.uses_questions,
                    uses_analogies=c.uses_analogies,
                    storytelling_style=c.storytelling_style,
                ),
                vocabulary=Vocabulary(
                    frequent_words=list(c.frequent_words),
                    signature_phrases=list(c.signature_phrases),
                    filler_words=list(c.filler_words),
                ),
                enthusiasm=EnthusiasmPattern(
                    topics_that_excite=list(c.topics_that_excite),
                    energy_baseline=(
                        c.energy_level if c.energy_level is not None
                        else EnthusiasmPattern().energy_baseline
                    ),
                ),
            ),
            written_patterns=WrittenPatterns(
                structure_preference=c.structure_preference,
                formality=c.formality,
                paragraph_length=c.paragraph_length,
                opening_style=c.opening_style,
                closing_style=c.closing_style,
            ),
            tonal_attributes=replace(c.tonal_attributes),
            word_frequencies=dict(c.word_frequencies),
            created_at=c.occurred_at,
            updated_at=c.occurred_at,
        )
        self._count(profile, c)
        self._cast_votes(profile, c, sequence=1)
        return profile

    def _merge(self, profile: VoiceDNA, c: FeatureContribution) -> None:
        cfg = self.config
        prior = profile.feature_contributions

        wp = profile.written_patterns
        wp.formality = running_average(wp.formality, c.formality, prior, cfg.prior_weight_cap)

        for name in TONAL_ATTRIBUTE_NAMES:
            merged = running_average(
                getattr(profile.tonal_attributes, name),
                getattr(c.tonal_attributes, name),
                prior,
                cfg.prior_weight_cap,
            )
            setattr(profile.tonal_attributes, name, merged)

        enthusiasm = profile.spoken_patterns.enthusiasm
        if c.energy_level is not None:
            enthusiasm.energy_baseline = running_average(
                enthusiasm.energy_baseline,
                c.energy_level,
                profile.voice_sessions_analyzed,
                cfg.prior_weight_cap,
            )
        enthusiasm.topics_that_excite = _union(enthusiasm.topics_that_excite, c.topics_that_excite)

        frequencies = Counter(profile.word_frequencies)
        frequencies.update(c.word_frequencies)
        ranked = _rank_words(dict(frequencies))[:cfg.max_tracked_words]
        profile.word_frequencies = {w: frequencies[w] for w in ranked}

        vocab = profile.spoken_patterns.vocabulary
        vocab.frequent_words = ranked[:cfg.surface_top_k]
        vocab.signature_phrases = _union(vocab.signature_phrases, c.signature_phrases)
        vocab.filler_words = _union(vocab.filler_words, c.filler_words)

        self._count(profile, c)
        self._cast_votes(profile, c, sequence=profile.feature_contributions)

    @staticmethod
    def _count(profile: VoiceDNA, c: FeatureContribution) -> None:
        if c.kind is ContributionKind.VOICE_SESSION:
            profile.voice_sessions_analyzed += 1
        else:
            profile.writing_samples_analyzed += 1
        profile.contribution_history.append(ensure_utc(c.occurred_at))

    # -----------------------------------------------------------------
    # CATEGORICAL VOTES
    # -----------------------------------------------------------------

    def _cast_votes(self, profile: VoiceDNA, c: FeatureContribution, sequence: int) -> None:
        for name, value in c.categorical_values().items():
            tally = profile.category_votes.setdefault(name, {})
            vote = tally.setdefault(value, CategoryVote())
            vote.count += 1
            vote.last_seen = sequence
        self._resolve_votes(profile)

    @staticmethod
    def _winner(tally: Dict[str, CategoryVote]) -> str:
        return max(tally.items(), key=lambda item: (item[1].count, item[1].last_seen))[0]

    def _resolve_votes(self, profile: VoiceDNA) -> None:
        votes = profile.category_votes
        rhythm = profile.spoken_patterns.rhythm
        rhetoric = profile.spoken_patterns.rhetoric
        written = profile.written_patterns

        for name in CATEGORICAL_FIELDS:
            if not votes.get(name):
                continue
            value = self._winner(votes[name])
            if name == "avg_sentence_length":
                rhythm.avg_sentence_length = LengthBucket(value)
            elif name == "pace_variation":
                rhythm.pace_variation = PaceVariation(value)
            elif name == "storytelling_style":
                rhetoric.storytelling_style = StorytellingStyle(value)
            elif name == "uses_questions":
                rhetoric.uses_questions = value == "true"
            elif name == "uses_analogies":
                rhetoric.uses_analogies = value == "true"
            elif name == "structure_preference":
                written.structure_preference = StructurePreference(value)
            elif name == "paragraph_length":
                written.paragraph_length = LengthBucket(value)
            elif name == "opening_style":
                written.opening_style = OpeningStyle(value)
            elif name == "closing_style":
                written.closing_style = ClosingStyle(value)

    # -----------------------------------------------------------------
    # CALIBRATION
    # -----------------------------------------------------------------

    def _apply_calibration(
        self, profile: VoiceDNA, round_: CalibrationRound, now: datetime
    ) -> None:
        if round_.id in profile.applied_calibration_rounds:
            logger.warning(
                "Calibration round %d (%s) already applied, skipping",
                round_.round_number,
                round_.id,
            )
            return
        for rule in insights_to_rules(round_.insights_extracted):
            if self.config.merge_similar_rules:
                self._merge_rule(profile.learned_rules, rule)
            else:
                profile.learned_rules.append(rule)
        # Oldest rules go first once the cap is reached
        del profile.learned_rules[:-self.config.max_learned_rules]
        profile.calibration_rounds_completed += 1
        profile.contribution_history.append(now)
        profile.applied_calibration_rounds.append(round_.id)

    def _merge_rule(self, rules: List[LearnedRule], rule: LearnedRule) -> None:
        """Fold *rule* into the most similar rule of the same type, or append it."""
        best_index, best_ratio = -1, 0.0
        for index, existing in enumerate(rules):
            if existing.type is not rule.type:
                continue
            ratio = SequenceMatcher(
                None, existing.content.lower(), rule.content.lower()
            ).ratio()
            if ratio > best_ratio:
                best_index, best_ratio = index, ratio

        if best_index >= 0 and best_ratio >= self.config.rule_similarity_threshold:
            target = rules[best_index]
            target.confidence = min(
                1.0, target.confidence + rule.confidence * self.config.merged_confidence_boost
            )
            target.source_count += 1
            logger.debug("Merged learned rule into '%s' (%.2f)", target.content, best_ratio)
        else:
            rules.append(rule)

    # -----------------------------------------------------------------
    # INVARIANTS
    # -----------------------------------------------------------------

    def _check_invariants(
        self, profile: VoiceDNA, previous: Optional[VoiceDNA], corrective: bool
    ) -> None:
        violations: List[str] = []

        if not 0 <= profile.calibration_score <= 100:
            violations.append(f"calibration_score {profile.calibration_score} outside [0, 100]")

        scalars = dict(profile.tonal_attributes.as_dict())
        scalars["formality"] = profile.written_patterns.formality
        scalars["energy_baseline"] = profile.spoken_patterns.enthusiasm.energy_baseline
        for name, value in scalars.items():
            if not -_SCALAR_TOLERANCE <= value <= 1.0 + _SCALAR_TOLERANCE:
                violations.append(f"{name} {value} outside [0, 1]")

        for rule in profile.learned_rules:
            if not 0.0 <= rule.confidence <= 1.0:
                violations.append(f"learned rule confidence {rule.confidence} outside [0, 1]")

        if profile.referent_influences is not None:
            violations.extend(profile.referent_influences.violations())

        if previous is not None:
            for counter in (
                "voice_sessions_analyzed",
                "writing_samples_analyzed",
                "calibration_rounds_completed",
            ):
                if getattr(profile, counter) < getattr(previous, counter):
                    violations.append(f"{counter} decreased")
            lost = set(previous.spoken_patterns.vocabulary.signature_phrases) - set(
                profile.spoken_patterns.vocabulary.signature_phrases
            )
            if lost:
                violations.append(f"signature phrases dropped: {sorted(lost)}")
            if not corrective and profile.calibration_score < previous.calibration_score:
                violations.append("calibration_score decreased outside a corrective recompute")

        if violations:
            logger.error("Aggregation invariant violations: %s", violations)
            raise AggregationFailedError(violations)


__all__ = [
    "ProfileAggregator",
    "derive_state",
    "running_average",
]
