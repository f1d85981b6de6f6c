"""
Fallback Manager for Mindful.

Tracks completion failures and decides when the conversation should
degrade to canned replies instead of stalling.
"""

import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .models import ConnectionHealth

logger = logging.getLogger(__name__)

FALLBACK_RESPONSES = (
    "I understand how you're feeling. Would you like to talk more about that?",
    "Thank you for sharing. Sometimes expressing our thoughts can help us process them better.",
    "I appreciate you opening up. What do you think might help in this situation?",
    "That's a valid feeling. Would it help to explore some coping strategies together?",
    "I'm here to listen. Would you like to tell me more about what's on your mind?",
)


@dataclass
class FallbackConfig:
    """Configuration for fallback behavior."""
    # Consecutive failures that trigger a fallback reply
    failure_threshold: int = 2
    responses: Sequence[str] = FALLBACK_RESPONSES


class FallbackManager:
    """
    Owns ConnectionHealth for one conversation.

    A failure streak reaching the threshold yields a canned reply, marks
    the connection degraded and starts a new streak. Success or an
    explicit reset restores a healthy state.
    """

    def __init__(self, config: Optional[FallbackConfig] = None, rng: Optional[random.Random] = None):
        """
        Initialize fallback manager.

        Args:
            config: Fallback configuration. Uses defaults if not provided.
            rng: Random source for picking replies.
        """
        self.config = config or FallbackConfig()
        if not self.config.responses:
            raise ValueError("At least one fallback response is required")
        self._rng = rng or random.Random()
        self._health = ConnectionHealth()
        self._on_health_change: Optional[Callable[[ConnectionHealth], None]] = None

    @property
    def health(self) -> ConnectionHealth:
        """Current connection health snapshot."""
        return self._health

    def set_health_change_callback(
        self,
        callback: Callable[[ConnectionHealth], None]
    ) -> None:
        """
        Set callback for health changes.

        Args:
            callback: Function called with the new ConnectionHealth.
        """
        self._on_health_change = callback

    def report_success(self) -> None:
        """Report a successful exchange."""
        self._set_health(ConnectionHealth())

    def report_failure(self, error: Optional[str] = None) -> Optional[str]:
        """
        Report a failed exchange.

        Args:
            error: Error code or description.

        Returns:
            A fallback reply to show if the streak reached the threshold, else None.
        """
        failures = self._health.consecutive_failures + 1
        logger.warning(f"Completion failure #{failures}: {error}")

        if failures < self.config.failure_threshold:
            self._set_health(ConnectionHealth(
                consecutive_failures=failures,
                degraded=self._health.degraded
            ))
            return None

        response = self._rng.choice(list(self.config.responses))
        logger.info("Switching to fallback response")
        self._set_health(ConnectionHealth(consecutive_failures=0, degraded=True))
        return response

    def reset(self) -> None:
        """Clear the failure streak and degraded flag."""
        self._set_health(ConnectionHealth())

    def _set_health(self, health: ConnectionHealth) -> None:
        if health == self._health:
            return
        self._health = health
        if self._on_health_change:
            self._on_health_change(health)
