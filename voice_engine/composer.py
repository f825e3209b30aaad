"""
Prompt Composer: renders the generation prompt for one piece of content.

Pure and deterministic.  Sections always appear in this order:

1. CRITICAL INSTRUCTION
2. VOICE DNA PROFILE
3. REFERENT INFLUENCES + BLENDING RULES (only with a referent weighted > 0)
4. THEIR ORIGINAL WORDS (+ EXPANDED THOUGHTS from answered follow-ups)
5. ENTHUSIASM MAP (only with an enthusiasm analysis)
6. CONTENT STRUCTURE
7. OUTPUT REQUIREMENTS

Every list is rendered in its stored order, so identical input renders
byte-identical output.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from voice_engine.exceptions import ComposerInputIncompleteError
from voice_engine.models import (
    ClosingStyle,
    ContentOutline,
    EnthusiasmAnalysis,
    FollowUpQuestion,
    FollowUpResponse,
    GenerationRequest,
    OpeningStyle,
    ReferentInfluences,
    ResponseType,
    TonalAttributes,
    VoiceDNA,
)
from voice_engine.referents.catalog import ReferentCatalog, get_default_catalog

logger = logging.getLogger(__name__)

RULE_CONFIDENCE_FLOOR = 0.6
HIGH_ENERGY_SEGMENT = 0.6
SEGMENT_PREVIEW_CHARS = 100
MAX_FREQUENT_WORDS = 10
MAX_KEY_QUOTES = 2


# =============================================================================
# CONSTANT TEXT
# =============================================================================

GENERATION_SYSTEM_PROMPT = """You are a skilled content writer who transforms spoken thoughts into polished written content while preserving the speaker's authentic voice.

Your role is to structure and polish, NOT to add your own ideas or change the speaker's perspective. The spoken words ARE the content. Your job is to organize them into readable, engaging prose.

Key principles:
1. PRESERVE their unique vocabulary and phrases
2. MAINTAIN their natural rhythm and pacing
3. CAPTURE their enthusiasm where they showed it
4. STRUCTURE content logically while keeping their flow
5. NEVER add opinions, facts, or ideas they didn't express
6. KEEP their tone; don't make casual speakers sound formal

You write in markdown format with clear headings, well-structured paragraphs, and emphasis where the speaker showed enthusiasm."""

CRITICAL_INSTRUCTION = """## CRITICAL INSTRUCTION

This is NOT about writing "in a style". This is about capturing this SPECIFIC PERSON's voice.
Their spoken words ARE the content. Your job is to structure and polish, not to add your own ideas.

Rules:
- Use THEIR vocabulary: preserve their unique phrases and expressions
- Match THEIR rhythm: if they speak in short bursts, write in short paragraphs
- Capture THEIR enthusiasm: the moments they got excited are the highlights
- Keep THEIR perspective: don't add opinions or facts they didn't mention
- Maintain THEIR tone: if they're casual, stay casual; if they're formal, stay formal"""

BLENDING_RULES = """## BLENDING RULES
1. User voice is ALWAYS the foundation
2. Referent influences are "seasoning": enhance, don't override
3. When styles conflict, favor user's natural patterns
4. Never lose the user's unique phrases or vocabulary"""

OUTPUT_REQUIREMENTS = """## OUTPUT REQUIREMENTS

1. Write in markdown format
2. Start with a compelling title (# Heading)
3. Use ## for major sections
4. Keep their authentic voice; tone should be {formality_note}
5. Emphasize high-enthusiasm moments with **bold** or > blockquotes
6. Include their actual phrases; don't paraphrase unique expressions
7. Target {paragraph_length} paragraphs
8. End according to their preferred style

IMPORTANT:
- Do NOT add facts, statistics, or examples they didn't mention
- Do NOT change their perspective or opinions
- Do NOT make the content more formal than their natural speech
- Do NOT add generic filler or transitions; use their words"""

OPENING_GUIDANCE: Dict[OpeningStyle, str] = {
    OpeningStyle.HOOK: "a provocative statement or surprising insight",
    OpeningStyle.CONTEXT: "setting the scene and providing background",
    OpeningStyle.QUESTION: "a thought-provoking question",
    OpeningStyle.STORY: "a personal anecdote or narrative",
}

CLOSING_GUIDANCE: Dict[ClosingStyle, str] = {
    ClosingStyle.CTA: "a clear call to action",
    ClosingStyle.SUMMARY: "a summary of key points",
    ClosingStyle.QUESTION: "a reflective question for the reader",
    ClosingStyle.REFLECTION: "a personal reflection or insight",
}


# =============================================================================
# CONTEXT
# =============================================================================


@dataclass
class GenerationContext:
    """Everything the composer needs for one generation request."""

    voice_dna: Optional[VoiceDNA]
    original_transcript: Optional[str]
    enthusiasm_analysis: Optional[EnthusiasmAnalysis] = None
    content_outline: Optional[ContentOutline] = None
    follow_up_responses: List[FollowUpResponse] = field(default_factory=list)
    follow_up_questions: List[FollowUpQuestion] = field(default_factory=list)


# =============================================================================
# FORMAT HELPERS
# =============================================================================


def format_formality(formality: float) -> str:
    if formality < 0.3:
        return "Casual/Conversational"
    if formality < 0.5:
        return "Friendly/Approachable"
    if formality < 0.7:
        return "Professional"
    return "Formal"


def format_tonal_attributes(attrs: TonalAttributes) -> str:
    lines: List[str] = []
    if attrs.warmth > 0.6:
        lines.append("- Warm and friendly")
    if attrs.warmth < 0.4:
        lines.append("- Professional/Reserved")
    if attrs.authority > 0.7:
        lines.append("- Confident and authoritative")
    if attrs.humor > 0.5:
        lines.append("- Incorporates humor")
    if attrs.directness > 0.7:
        lines.append("- Very direct and to the point")
    if attrs.directness < 0.3:
        lines.append("- Thoughtful and nuanced")
    if attrs.empathy > 0.7:
        lines.append("- Empathetic and understanding")
    return "\n".join(lines) if lines else "- Balanced, moderate tone"


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _percent(value: float) -> str:
    return f"{value * 100:.0f}%"


# =============================================================================
# SECTIONS
# =============================================================================


def _voice_dna_section(dna: VoiceDNA) -> str:
    sp = dna.spoken_patterns
    wp = dna.written_patterns
    parts: List[str] = ["## VOICE DNA PROFILE"]

    parts.append(
        "### Speaking Style\n"
        f"- Sentence length: {sp.rhythm.avg_sentence_length.value}\n"
        f"- Pace: {sp.rhythm.pace_variation.value}\n"
        f"- Uses questions: {_yes_no(sp.rhetoric.uses_questions)}\n"
        f"- Uses analogies: {_yes_no(sp.rhetoric.uses_analogies)}\n"
        f"- Storytelling style: {sp.rhetoric.storytelling_style.value}"
    )

    if sp.vocabulary.signature_phrases:
        phrases = "\n".join(f'- "{p}"' for p in sp.vocabulary.signature_phrases)
        parts.append(f"\n### Signature Phrases to Preserve\n{phrases}")

    if sp.vocabulary.frequent_words:
        words = ", ".join(sp.vocabulary.frequent_words[:MAX_FREQUENT_WORDS])
        parts.append(f"\n### Frequently Used Words\n{words}")

    if sp.enthusiasm.topics_that_excite:
        topics = "\n".join(f"- {t}" for t in sp.enthusiasm.topics_that_excite)
        parts.append(f"\n### Topics That Excite Them\n{topics}")

    parts.append(
        "\n### Writing Preferences\n"
        f"- Structure: {wp.structure_preference.value}\n"
        f"- Formality: {format_formality(wp.formality)}\n"
        f"- Paragraph length: {wp.paragraph_length.value}\n"
        f"- Opening style: {wp.opening_style.value}\n"
        f"- Closing style: {wp.closing_style.value}"
    )

    parts.append(f"\n### Tonal Profile\n{format_tonal_attributes(dna.tonal_attributes)}")

    rules = [r for r in dna.learned_rules if r.confidence > RULE_CONFIDENCE_FLOOR]
    if rules:
        lines = "\n".join(f"- {r.type.value.upper()}: {r.content}" for r in rules)
        parts.append(f"\n### Style Rules (from calibration)\n{lines}")

    return "\n".join(parts)


def _referent_section(influences: ReferentInfluences, catalog: ReferentCatalog) -> str:
    parts: List[str] = ["## REFERENT INFLUENCES"]
    parts.append(
        f"PRIMARY ({influences.user_weight}%): User's authentic voice\n"
        "- This is the foundation: always preserve their natural patterns\n"
        "- User's words and phrases take priority"
    )

    for ref in influences.referents:
        if ref.weight <= 0:
            continue
        profile = catalog.get(ref.referent_id)
        if profile is None:
            raise ComposerInputIncompleteError(
                "referent_influences", f"referent '{ref.referent_id}' is not in the catalog"
            )
        block = f"\nINFLUENCE ({ref.weight}%): {ref.name}\n{profile.prompt_guidance}"
        if ref.active_traits:
            block += f"\nApply especially: {', '.join(ref.active_traits)}"
        parts.append(block)

    parts.append(f"\n{BLENDING_RULES}")
    return "\n".join(parts)


def _content_section(
    transcript: str,
    responses: List[FollowUpResponse],
    questions: List[FollowUpQuestion],
) -> str:
    parts: List[str] = [f'## THEIR ORIGINAL WORDS\n"""\n{transcript}\n"""']

    answered = [
        r for r in responses
        if r.response_type is not ResponseType.SKIP and r.content
    ]
    if answered:
        by_id = {q.id: q.question for q in questions}
        blocks = "\n\n".join(
            f'Q: {by_id.get(r.question_id, "Follow-up question")}\nA: """\n{r.content}\n"""'
            for r in answered
        )
        parts.append(f"\n## EXPANDED THOUGHTS (from follow-up questions)\n{blocks}")

    return "\n\n".join(parts)


def _enthusiasm_section(analysis: EnthusiasmAnalysis) -> str:
    parts: List[str] = ["## ENTHUSIASM MAP"]
    parts.append(f"Overall energy level: {_percent(analysis.overall_energy)}")

    if analysis.peak_moments:
        moments = "\n".join(
            f'- "{pm.text}"\n  → {pm.reason}\n  → Use as: {pm.use_as.value}'
            for pm in analysis.peak_moments
        )
        parts.append(f"\n### Peak Moments (emphasize these)\n{moments}")

    high = [s for s in analysis.segments if s.energy_score > HIGH_ENERGY_SEGMENT]
    if high:
        lines = []
        for s in high:
            preview = s.text[:SEGMENT_PREVIEW_CHARS]
            if len(s.text) > SEGMENT_PREVIEW_CHARS:
                preview += "..."
            lines.append(f'- "{preview}" ({_percent(s.energy_score)} energy)')
        parts.append("\n### High-Energy Sections\n" + "\n".join(lines))

    return "\n".join(parts)


def _structure_section(outline: Optional[ContentOutline], dna: VoiceDNA) -> str:
    parts: List[str] = ["## CONTENT STRUCTURE"]

    if outline is not None:
        parts.append(
            f'Suggested title: "{outline.suggested_title}"\n'
            f"Target length: ~{outline.estimated_word_count} words"
        )
        if outline.sections:
            lines = []
            for i, section in enumerate(outline.sections, start=1):
                quotes = ", ".join(f'"{q}"' for q in section.key_quotes[:MAX_KEY_QUOTES])
                lines.append(
                    f"{i}. {section.type.value.upper()}: {section.title}\n"
                    f"   Key quotes: {quotes or 'None specified'}"
                )
            parts.append("\n### Suggested Sections\n" + "\n".join(lines))

    wp = dna.written_patterns
    parts.append(
        "\n### Structure Preferences\n"
        f"- Use {wp.structure_preference.value} organization\n"
        f"- Start with: {OPENING_GUIDANCE[wp.opening_style]}\n"
        f"- End with: {CLOSING_GUIDANCE[wp.closing_style]}\n"
        f"- Paragraphs: {wp.paragraph_length.value} length preferred"
    )
    return "\n".join(parts)


def _output_requirements(dna: VoiceDNA) -> str:
    formality = dna.written_patterns.formality
    if formality < 0.3:
        note = "casual, conversational"
    elif formality > 0.7:
        note = "polished, professional"
    else:
        note = "balanced, approachable"
    return OUTPUT_REQUIREMENTS.format(
        formality_note=note,
        paragraph_length=dna.written_patterns.paragraph_length.value,
    )


# =============================================================================
# ENTRY POINTS
# =============================================================================


def compose_generation_prompt(
    context: GenerationContext, catalog: Optional[ReferentCatalog] = None
) -> str:
    """
    Render the full generation prompt.

    Raises:
        ComposerInputIncompleteError: If the profile or transcript is
            missing, or a weighted referent cannot be resolved.
    """
    if context.voice_dna is None:
        raise ComposerInputIncompleteError("voice_dna")
    if not context.original_transcript or not context.original_transcript.strip():
        raise ComposerInputIncompleteError("original_transcript")

    dna = context.voice_dna
    sections: List[str] = [CRITICAL_INSTRUCTION, _voice_dna_section(dna)]

    influences = dna.referent_influences
    if influences is not None and any(r.weight > 0 for r in influences.referents):
        sections.append(_referent_section(influences, catalog or get_default_catalog()))

    sections.append(
        _content_section(
            context.original_transcript,
            context.follow_up_responses,
            context.follow_up_questions,
        )
    )

    if context.enthusiasm_analysis is not None:
        sections.append(_enthusiasm_section(context.enthusiasm_analysis))

    sections.append(_structure_section(context.content_outline, dna))
    sections.append(_output_requirements(dna))

    prompt = "\n\n".join(sections)
    logger.debug("Composed generation prompt: %d sections, %d chars", len(sections), len(prompt))
    return prompt


def build_generation_request(
    context: GenerationContext, catalog: Optional[ReferentCatalog] = None
) -> GenerationRequest:
    """Prompt plus the constant system prompt, ready for the text generator."""
    return GenerationRequest(
        prompt=compose_generation_prompt(context, catalog),
        system_prompt=GENERATION_SYSTEM_PROMPT,
    )


__all__ = [
    "GenerationContext",
    "GENERATION_SYSTEM_PROMPT",
    "compose_generation_prompt",
    "build_generation_request",
    "format_formality",
    "format_tonal_attributes",
    "OPENING_GUIDANCE",
    "CLOSING_GUIDANCE",
]
