"""
LLM module for Mindful.
Provides the resilient completion gateway over the Groq API.
"""

from .gateway import (
    CompletionGateway,
    CompletionResult,
    ErrorCode,
    GatewayConfig,
    HISTORY_LIMIT,
    SYSTEM_PROMPT,
)
from .retry import RetryBudget

__all__ = [
    "CompletionGateway",
    "CompletionResult",
    "ErrorCode",
    "GatewayConfig",
    "HISTORY_LIMIT",
    "SYSTEM_PROMPT",
    "RetryBudget",
]
