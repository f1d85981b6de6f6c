"""
Sentiment classification for Mindful.
Scores free text against fixed emotion lexicons.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Sequence


class Emotion(str, Enum):
    """Emotions the classifier can report as dominant."""
    JOY = "joy"
    GRATITUDE = "gratitude"
    CALM = "calm"
    SADNESS = "sadness"
    ANXIETY = "anxiety"
    ANGER = "anger"
    FEAR = "fear"
    SHAME = "shame"
    CONFUSION = "confusion"
    NEUTRAL = "neutral"


# Tie-break order for the dominant emotion
CANONICAL_ORDER = (
    Emotion.JOY,
    Emotion.GRATITUDE,
    Emotion.CALM,
    Emotion.SADNESS,
    Emotion.ANXIETY,
    Emotion.ANGER,
    Emotion.FEAR,
    Emotion.SHAME,
    Emotion.CONFUSION,
)

POSITIVE_EMOTIONS = frozenset({Emotion.JOY, Emotion.GRATITUDE, Emotion.CALM})
NEGATIVE_EMOTIONS = frozenset({
    Emotion.SADNESS, Emotion.ANXIETY, Emotion.ANGER, Emotion.FEAR, Emotion.SHAME
})

# Terms are matched as lowercase substrings, not whole words.
# "shame" also covers "ashamed", "cry" also covers "crying".
DEFAULT_LEXICON: Dict[Emotion, Sequence[str]] = {
    Emotion.JOY: [
        "happy", "joy", "glad", "excited", "delighted", "cheerful",
        "wonderful", "great"
    ],
    Emotion.GRATITUDE: [
        "grateful", "thankful", "thank you", "thanks", "appreciate", "gratitude"
    ],
    Emotion.CALM: [
        "calm", "relaxed", "peaceful", "at peace", "serene", "content"
    ],
    Emotion.SADNESS: [
        "sad", "depressed", "lonely", "hopeless", "cry", "grief",
        "heartbroken", "miserable"
    ],
    Emotion.ANXIETY: [
        "anxious", "anxiety", "worried", "nervous", "stress", "panic",
        "overwhelmed", "uneasy"
    ],
    Emotion.ANGER: [
        "angry", "furious", "i hate", "hateful", "annoyed", "frustrated",
        "irritated", "resentful"
    ],
    Emotion.FEAR: [
        "scared", "afraid", "fear", "terrified", "frightened"
    ],
    Emotion.SHAME: [
        "shame", "embarrassed", "guilty", "humiliated", "worthless", "my fault"
    ],
    Emotion.CONFUSION: [
        "confused", "confusing", "unsure", "not sure", "don't understand",
        "unclear", "lost"
    ],
}


@dataclass(frozen=True)
class EmotionProfile:
    """Result of classifying one piece of text."""
    score: float  # -1.0 (negative) to 1.0 (positive)
    dominant: Emotion
    emotion_counts: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def neutral(cls) -> "EmotionProfile":
        """Profile with no recognised emotion."""
        return cls(
            score=0.0,
            dominant=Emotion.NEUTRAL,
            emotion_counts={emotion.value: 0 for emotion in CANONICAL_ORDER}
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "dominant": self.dominant.value,
            "emotion_counts": dict(self.emotion_counts),
        }


class SentimentAnalyzer:
    """
    Lexicon-based emotion scorer.

    Deterministic and total: any string, including the empty one,
    yields an EmotionProfile.
    """

    def __init__(self, lexicon: Optional[Dict[Emotion, Sequence[str]]] = None):
        """
        Initialize the analyzer.

        Args:
            lexicon: Optional term lists per emotion. Uses DEFAULT_LEXICON if not provided.
        """
        source = lexicon if lexicon is not None else DEFAULT_LEXICON
        self._lexicon = {
            emotion: tuple(term.lower() for term in source.get(emotion, ()))
            for emotion in CANONICAL_ORDER
        }

    def classify(self, text: str) -> EmotionProfile:
        """
        Classify the emotional content of text.

        Args:
            text: Free text to score.

        Returns:
            EmotionProfile with score, dominant emotion and per-emotion counts.
        """
        text_lower = (text or "").lower()
        counts = {
            emotion: self._count_terms(text_lower, terms)
            for emotion, terms in self._lexicon.items()
        }

        positive = sum(counts[emotion] for emotion in POSITIVE_EMOTIONS)
        negative = sum(counts[emotion] for emotion in NEGATIVE_EMOTIONS)
        total = positive + negative
        score = (positive - negative) / total if total else 0.0
        score = max(-1.0, min(1.0, score))

        dominant = Emotion.NEUTRAL
        best = 0
        for emotion in CANONICAL_ORDER:
            if counts[emotion] > best:
                dominant = emotion
                best = counts[emotion]

        return EmotionProfile(
            score=score,
            dominant=dominant,
            emotion_counts={emotion.value: counts[emotion] for emotion in CANONICAL_ORDER}
        )

    def _count_terms(self, text: str, terms: Sequence[str]) -> int:
        """Count every occurrence of every term in text."""
        if not text:
            return 0
        return sum(text.count(term) for term in terms if term)


_default_analyzer = SentimentAnalyzer()


def classify(text: str) -> EmotionProfile:
    """Classify text with the default lexicon."""
    return _default_analyzer.classify(text)
