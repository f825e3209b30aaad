"""
Shared word lists, marker phrases and text helpers for the analyzers.

Also owns ``BaselineFrequencies``, the general-language n-gram rate table
that signature-phrase detection compares against.  The table is an
external YAML resource (``voice_engine/data/baseline_ngrams.yaml`` by
default) so it can be swapped without touching code.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Tuple

import yaml

from voice_engine.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# TEXT HELPERS
# =============================================================================

_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "`": "'"})
_TOKEN_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


def normalize(text: str) -> str:
    """Lowercase and unify apostrophe variants."""
    return text.translate(_APOSTROPHES).lower()


def tokenize(text: str) -> List[str]:
    """Split *text* into lowercase word tokens, keeping contractions whole."""
    return _TOKEN_RE.findall(normalize(text))


def split_sentences(text: str) -> List[str]:
    """Split on terminal punctuation followed by whitespace."""
    parts = _SENTENCE_SPLIT_RE.split(text.strip())
    return [p.strip() for p in parts if p.strip() and tokenize(p)]


def split_paragraphs(text: str) -> List[str]:
    return [p.strip() for p in _PARAGRAPH_SPLIT_RE.split(text) if p.strip()]


def count_phrase(phrase: str, tokens: List[str]) -> int:
    """Count occurrences of a (possibly multi-word) phrase in a token list."""
    parts = phrase.split()
    n = len(parts)
    if n == 1:
        return tokens.count(parts[0])
    return sum(1 for i in range(len(tokens) - n + 1) if tokens[i:i + n] == parts)


def contains_any(text: str, phrases: FrozenSet[str]) -> bool:
    padded = f" {' '.join(tokenize(text))} "
    return any(f" {p} " in padded for p in phrases)


# =============================================================================
# WORD LISTS
# =============================================================================

# Words that signal conviction when spoken
EMPHASIS_WORDS: FrozenSet[str] = frozenset({
    "really", "absolutely", "incredible", "amazing", "crucial", "essential",
    "love", "hate", "brilliant", "terrible", "fantastic", "definitely",
    "exactly", "totally", "completely", "actually", "seriously", "literally",
    "honestly", "huge", "massive", "critical", "vital", "important",
    "fascinating", "exciting", "passionate",
})

# Ordered: multi-word fillers are reported before single-word ones
FILLER_PHRASES: Tuple[str, ...] = (
    "you know", "sort of", "kind of", "i mean",
    "um", "uh", "like", "basically", "actually", "literally",
    "right", "so", "well", "anyway", "honestly",
)

# Pure disfluencies, never content
DISFLUENCIES: FrozenSet[str] = frozenset({"um", "uh", "er", "ah", "hmm", "mm", "erm"})

STOPWORDS: FrozenSet[str] = frozenset({
    "a", "about", "above", "after", "again", "against", "all", "also", "am",
    "an", "and", "any", "are", "aren't", "as", "at", "be", "because", "been",
    "before", "being", "below", "between", "both", "but", "by", "can",
    "can't", "could", "couldn't", "did", "didn't", "do", "does", "doesn't",
    "doing", "don't", "down", "during", "each", "even", "ever", "few", "for",
    "from", "further", "get", "gets", "getting", "go", "going", "got", "had",
    "hadn't", "has", "hasn't", "have", "haven't", "having", "he", "he's",
    "her", "here", "here's", "hers", "herself", "him", "himself", "his",
    "how", "i", "i'd", "i'll", "i'm", "i've", "if", "in", "into", "is",
    "isn't", "it", "it's", "its", "itself", "just", "let's", "like", "me",
    "more", "most", "much", "my", "myself", "no", "nor", "not", "now", "of",
    "off", "on", "once", "one", "only", "or", "other", "our", "ours",
    "ourselves", "out", "over", "own", "really", "same", "say", "said",
    "she", "she's", "should", "shouldn't", "so", "some", "such", "than",
    "that", "that's", "the", "their", "theirs", "them", "themselves", "then",
    "there", "there's", "these", "they", "they're", "thing", "things",
    "think", "this", "those", "through", "to", "too", "under", "until", "up",
    "us", "very", "was", "wasn't", "way", "we", "we'd", "we'll", "we're",
    "we've", "were", "weren't", "what", "what's", "when", "where", "which",
    "while", "who", "whom", "why", "will", "with", "won't", "would",
    "wouldn't", "yeah", "you", "you'd", "you'll", "you're", "you've", "your",
    "yours", "yourself", "yourselves", "know", "mean", "well", "right",
    "okay", "ok", "want", "make", "lot", "kind", "sort", "something",
    "anything", "everything", "maybe", "still", "actually", "basically",
    "literally", "honestly", "anyway",
})

SLANG_WORDS: FrozenSet[str] = frozenset({
    "gonna", "wanna", "gotta", "kinda", "sorta", "yeah", "yep", "nope",
    "cool", "awesome", "stuff", "guys", "dude", "crazy", "super", "ya",
    "y'all", "lol", "omg", "ain't", "folks", "huge", "insane", "legit",
})

PERSONAL_PRONOUNS: FrozenSet[str] = frozenset({
    "i", "me", "my", "mine", "myself", "we", "us", "our", "ours",
    "you", "your", "yours", "yourself", "i'm", "i've", "i'd", "i'll",
    "we're", "we've", "you're", "you've",
})

CONTRACTION_SUFFIXES: Tuple[str, ...] = ("n't", "'re", "'ll", "'ve", "'m", "'d", "'s")


def is_contraction(token: str) -> bool:
    return "'" in token and token.endswith(CONTRACTION_SUFFIXES)


def is_content_word(token: str) -> bool:
    """True for tokens that are neither stopwords, fillers nor bare numbers."""
    return (
        len(token) > 2
        and token not in STOPWORDS
        and token not in DISFLUENCIES
        and not token.isdigit()
    )


# =============================================================================
# RHETORIC MARKERS
# =============================================================================

ANALOGY_MARKERS: FrozenSet[str] = frozenset({
    "like a", "like an", "as if", "as though", "similar to", "just like",
    "think of it as", "think of it like", "it's like", "the same way",
    "analogous to", "compared to", "reminds me of", "is kind of like",
})

NARRATIVE_MARKERS: FrozenSet[str] = frozenset({
    "i remember", "one day", "last year", "last week", "once upon",
    "when i was", "back then", "years ago", "one time", "i was", "we were",
    "story", "happened",
})

SEQUENCE_MARKERS: FrozenSet[str] = frozenset({
    "first", "then", "after that", "next", "later", "eventually",
    "afterwards", "finally", "the next day", "by the time",
})

THESIS_MARKERS: FrozenSet[str] = frozenset({
    "the point is", "here's the thing", "my point", "i believe",
    "the key is", "the truth is", "the lesson", "what matters",
    "the bottom line", "my argument", "the reason is",
})

# =============================================================================
# OPENING / CLOSING PATTERNS
# =============================================================================

STORY_OPENING_RE = re.compile(
    r"^(i was|i remember|last (week|year|month)|one (time|day)|when i|"
    r"years ago|a few (years|months|weeks) ago|back in|yesterday)\b",
    re.IGNORECASE,
)
HOOK_OPENING_RE = re.compile(
    r"^(let me|here's|the thing is|think about|imagine|stop|most people|"
    r"nobody|everyone|the truth|forget|what if|\d+)\b",
    re.IGNORECASE,
)
CTA_CLOSING_RE = re.compile(
    r"^(try|start|go|share|comment|join|subscribe|click|sign up|take|pick|"
    r"give it a|reach out|tell me|don't wait|stop)\b"
    r"|\b(let me know|comment below|share this|drop a|reply with)\b",
    re.IGNORECASE,
)
SUMMARY_CLOSING_RE = re.compile(
    r"\b(to summarize|in short|bottom line|in conclusion|the takeaway|"
    r"overall|that's why|to sum up|in the end)\b",
    re.IGNORECASE,
)
HEADING_RE = re.compile(r"^\s*(#{1,6}\s+\S|[A-Z][^.!?\n]{0,60}:\s*$)", re.MULTILINE)
BULLET_RE = re.compile(r"^\s*([-*•]|\d+[.)])\s+\S", re.MULTILINE)


# =============================================================================
# TONAL LEXICONS
# =============================================================================

TONAL_LEXICONS: Dict[str, FrozenSet[str]] = {
    "warmth": frozenset({
        "love", "thank", "thanks", "grateful", "appreciate", "glad", "happy",
        "wonderful", "friend", "friends", "together", "care", "welcome",
        "kind", "share", "enjoy", "heart", "community",
    }),
    "authority": frozenset({
        "research", "evidence", "data", "studies", "proven", "clearly",
        "must", "expert", "experience", "results", "fact", "principle",
        "strategy", "research shows", "studies indicate", "evidence suggests",
        "therefore", "consequently",
    }),
    "humor": frozenset({
        "funny", "joke", "laugh", "haha", "lol", "hilarious", "ridiculous",
        "silly", "kidding", "ironically", "weird", "absurd",
    }),
    "directness": frozenset({
        "need", "must", "stop", "start", "simply", "bottom line", "period",
        "exactly", "clear", "straight", "here's", "don't", "do it",
        "no excuses", "the truth is",
    }),
    "empathy": frozenset({
        "understand", "feel", "hard", "struggle", "difficult", "been there",
        "i know how", "we've all", "sorry", "support", "listen", "frustrating",
        "overwhelming", "challenge", "i understand",
    }),
}


# =============================================================================
# GENERAL-LANGUAGE BASELINE
# =============================================================================


@dataclass
class BaselineFrequencies:
    """
    Per-n-gram occurrence rates in general English.

    ``rates`` maps a lowercase n-gram to its rate per n-gram position of the
    same order; unseen n-grams fall back to ``default_rate``.
    """

    rates: Dict[str, float] = field(default_factory=dict)
    default_rate: float = 1e-5

    def rate(self, ngram: str) -> float:
        return self.rates.get(ngram, self.default_rate)

    @classmethod
    def from_yaml(cls, path: Path) -> "BaselineFrequencies":
        """
        Load the baseline table.

        Raises:
            ConfigurationError: If the file is missing, unparsable or holds
                non-positive rates.
        """
        if not path.exists():
            raise ConfigurationError(f"Baseline n-gram table not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse baseline table {path}: {exc}") from exc

        default_rate = float(data.get("default_rate", 1e-5))
        rates = {str(k).lower(): float(v) for k, v in (data.get("rates") or {}).items()}
        if default_rate <= 0 or any(v <= 0 for v in rates.values()):
            raise ConfigurationError(f"Baseline rates must be positive in {path}")

        logger.debug("Loaded %d baseline n-gram rates from %s", len(rates), path)
        return cls(rates=rates, default_rate=default_rate)


__all__ = [
    "normalize",
    "tokenize",
    "split_sentences",
    "split_paragraphs",
    "count_phrase",
    "contains_any",
    "is_contraction",
    "is_content_word",
    "EMPHASIS_WORDS",
    "FILLER_PHRASES",
    "DISFLUENCIES",
    "STOPWORDS",
    "SLANG_WORDS",
    "PERSONAL_PRONOUNS",
    "ANALOGY_MARKERS",
    "NARRATIVE_MARKERS",
    "SEQUENCE_MARKERS",
    "THESIS_MARKERS",
    "STORY_OPENING_RE",
    "HOOK_OPENING_RE",
    "CTA_CLOSING_RE",
    "SUMMARY_CLOSING_RE",
    "HEADING_RE",
    "BULLET_RE",
    "TONAL_LEXICONS",
    "BaselineFrequencies",
]
