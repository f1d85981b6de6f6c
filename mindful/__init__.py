"""
Mindful - Resilient conversational support client with voice input and output.
"""

from .orchestrator import Orchestrator, OrchestratorError, TurnResult
from .models import ConnectionHealth, Message, Notice, NoticeLevel, Sender, ServiceResult
from .nlp import Emotion, EmotionProfile, SentimentAnalyzer, classify
from .llm import CompletionGateway, CompletionResult, ErrorCode, GatewayConfig, RetryBudget
from .fallback import FallbackManager, FallbackConfig

__version__ = "0.1.0"

__all__ = [
    "Orchestrator",
    "OrchestratorError",
    "TurnResult",
    "ConnectionHealth",
    "Message",
    "Notice",
    "NoticeLevel",
    "Sender",
    "ServiceResult",
    "Emotion",
    "EmotionProfile",
    "SentimentAnalyzer",
    "classify",
    "CompletionGateway",
    "CompletionResult",
    "ErrorCode",
    "GatewayConfig",
    "RetryBudget",
    "FallbackManager",
    "FallbackConfig",
]
