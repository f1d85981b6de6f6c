"""
Shared data model for Mindful.

Messages, connection health, notices and the tagged result value
returned by the speech service boundaries.
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from .nlp import EmotionProfile

T = TypeVar("T")

_id_lock = threading.Lock()
_last_id = 0


def new_message_id() -> str:
    """
    Generate a unique, monotonically increasing message ID.

    Based on the wall clock in nanoseconds, bumped when two IDs
    would otherwise collide.
    """
    global _last_id
    with _id_lock:
        _last_id = max(time.time_ns(), _last_id + 1)
        return str(_last_id)


class Sender(str, Enum):
    """Author of a message."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single immutable entry in the conversation log."""
    id: str
    content: str
    sender: Sender
    created_at: datetime
    sentiment: Optional[EmotionProfile] = None

    @classmethod
    def create(
        cls,
        content: str,
        sender: Sender,
        sentiment: Optional[EmotionProfile] = None
    ) -> "Message":
        """Create a message with a fresh ID and timestamp."""
        return cls(
            id=new_message_id(),
            content=content,
            sender=sender,
            created_at=datetime.now(),
            sentiment=sentiment
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "content": self.content,
            "sender": self.sender.value,
            "created_at": self.created_at.isoformat(),
            "sentiment": self.sentiment.to_dict() if self.sentiment else None,
        }


@dataclass(frozen=True)
class ConnectionHealth:
    """Consecutive completion failures and whether fallback mode is active."""
    consecutive_failures: int = 0
    degraded: bool = False


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Tagged success/error value returned by the speech service clients."""
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "ServiceResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ServiceResult":
        return cls(ok=False, error=error)


class NoticeLevel(Enum):
    """Severity of a user-visible notice."""
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A transient, dismissible notification for the UI layer."""
    title: str
    description: str
    level: NoticeLevel = NoticeLevel.INFO
