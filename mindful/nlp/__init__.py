"""
NLP module for Mindful.
Provides lexicon-based emotion classification.
"""

from .sentiment import (
    CANONICAL_ORDER,
    DEFAULT_LEXICON,
    Emotion,
    EmotionProfile,
    SentimentAnalyzer,
    classify,
)

__all__ = [
    "CANONICAL_ORDER",
    "DEFAULT_LEXICON",
    "Emotion",
    "EmotionProfile",
    "SentimentAnalyzer",
    "classify",
]
