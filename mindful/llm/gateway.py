"""
Completion gateway for Mindful.

Wraps the Groq chat completion API with credential checks, a bounded
retry policy and failure classification. Every call resolves to a
CompletionResult; nothing raises past `complete()`.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import groq
from dotenv import load_dotenv

from .retry import RetryBudget

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

HISTORY_LIMIT = 5

SYSTEM_PROMPT = """You are Mindful, a compassionate and supportive AI assistant for emotional well-being. Your goal is to provide empathetic responses, active listening, and gentle guidance.

Guidelines:
- Respond with warmth and empathy
- Ask thoughtful follow-up questions to help users explore their thoughts
- Suggest practical coping strategies when appropriate
- Maintain a supportive, non-judgmental tone
- Never diagnose conditions or prescribe treatment
- Recognize signs of distress and provide appropriate resources
- If someone seems to be in crisis, gently encourage them to seek professional help

Remember that your role is supportive, not to replace professional mental health care."""


class ErrorCode(str, Enum):
    """Failure categories reported by the gateway."""
    VALIDATION_ERROR = "validation_error"
    AUTH_ERROR = "auth_error"
    RATE_LIMIT = "rate_limit"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"


MISSING_KEY_MESSAGE = (
    "I'm unable to connect to my AI service because its API key is not configured. "
    "Please ask an administrator to set GROQ_API_KEY."
)
MALFORMED_KEY_MESSAGE = (
    "I'm unable to connect to my AI service because its API key appears to be malformed. "
    "Please ask an administrator to check GROQ_API_KEY."
)

FAILURE_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "I didn't receive a message. Could you please type it again?",
    ErrorCode.AUTH_ERROR: (
        "I'm unable to connect due to an authentication issue. "
        "Please contact support for assistance."
    ),
    ErrorCode.RATE_LIMIT: (
        "I'm receiving a lot of requests right now. "
        "Please give me a moment and try again."
    ),
    ErrorCode.API_ERROR: (
        "I'm having trouble connecting right now. Please try again in a moment, "
        "or let me know how else I can help you."
    ),
    ErrorCode.NETWORK_ERROR: (
        "I can't reach my AI service at the moment. "
        "Please check your connection and try again."
    ),
}


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of one completion request. `text` is always displayable."""
    ok: bool
    text: str
    error_code: Optional[ErrorCode] = None

    @classmethod
    def success(cls, text: str) -> "CompletionResult":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, code: ErrorCode, text: Optional[str] = None) -> "CompletionResult":
        return cls(ok=False, text=text or FAILURE_MESSAGES[code], error_code=code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ok": self.ok,
            "text": self.text,
            "error_code": self.error_code.value if self.error_code else None,
        }


@dataclass
class GatewayConfig:
    """Configuration for the completion gateway."""
    api_key: str = ""
    model: str = "llama-3.3-70b-versatile"
    temperature: float = 0.7
    max_tokens: int = 800
    timeout: float = 30.0
    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_multiplier: float = 1.0
    key_prefix: str = "gsk_"
    min_key_length: int = 40

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """Build a config from environment variables."""
        return cls(
            api_key=os.getenv("GROQ_API_KEY", ""),
            model=os.getenv("MINDFUL_MODEL", cls.model),
            timeout=float(os.getenv("MINDFUL_COMPLETION_TIMEOUT", cls.timeout)),
        )


class MalformedResponseError(Exception):
    """Raised when a successful response carries no usable reply."""
    pass


def _role_for(sender: Any) -> str:
    """Map a message sender onto a chat completion role."""
    value = getattr(sender, "value", sender)
    return "user" if value == "user" else "assistant"


class CompletionGateway:
    """
    Request/retry/error-classification layer around the completion service.

    Stateless between calls; retries happen sequentially inside the
    calling task.
    """

    def __init__(self, config: Optional[GatewayConfig] = None, client: Any = None):
        """
        Initialize the gateway.

        Args:
            config: Optional GatewayConfig. If not provided, uses environment variables.
            client: Optional pre-built client exposing `chat.completions.create`.
        """
        self.config = config or GatewayConfig.from_env()
        self._client = client

    def _get_client(self):
        """Lazy initialization of Groq client."""
        if self._client is None:
            # Retries are driven by RetryBudget, not the SDK
            self._client = groq.Groq(
                api_key=self.config.api_key,
                timeout=self.config.timeout,
                max_retries=0
            )
        return self._client

    def check_credential(self) -> Optional[CompletionResult]:
        """
        Validate presence and shape of the API key.

        Returns:
            A failed CompletionResult if the key is unusable, else None.
        """
        api_key = (self.config.api_key or "").strip()
        if not api_key:
            logger.error("Groq API key is not configured")
            return CompletionResult.failure(ErrorCode.AUTH_ERROR, MISSING_KEY_MESSAGE)

        if (not api_key.startswith(self.config.key_prefix)
                or len(api_key) < self.config.min_key_length):
            logger.error("Invalid Groq API key format detected")
            return CompletionResult.failure(ErrorCode.AUTH_ERROR, MALFORMED_KEY_MESSAGE)

        return None

    def build_messages(self, message: str, history: Sequence[Any] = ()) -> List[Dict[str, str]]:
        """
        Assemble the request messages.

        Args:
            message: The new user message.
            history: Prior messages (anything with `content` and `sender`).

        Returns:
            System instruction, up to HISTORY_LIMIT history entries, then the user message.
        """
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        for item in list(history)[-HISTORY_LIMIT:]:
            messages.append({
                "role": _role_for(item.sender),
                "content": item.content
            })
        messages.append({"role": "user", "content": message})
        return messages

    async def complete(self, message: Optional[str], history: Sequence[Any] = ()) -> CompletionResult:
        """
        Get a reply from the completion service.

        Args:
            message: The user's input text.
            history: Up to the 5 most recent conversation messages.

        Returns:
            CompletionResult; failures carry an error code and apology text.
        """
        if not message or not message.strip():
            return CompletionResult.failure(ErrorCode.VALIDATION_ERROR)

        credential_error = self.check_credential()
        if credential_error is not None:
            return credential_error

        messages = self.build_messages(message, history)
        try:
            budget = RetryBudget(
                max_attempts=self.config.max_attempts,
                base_delay=self.config.base_delay,
                multiplier=self.config.backoff_multiplier
            )
        except ValueError as e:
            logger.error(f"Invalid retry settings: {e}")
            return CompletionResult.failure(ErrorCode.API_ERROR)
        last_code = ErrorCode.API_ERROR

        while not budget.exhausted:
            attempt = budget.consume()
            try:
                reply = await self._request(messages)
                logger.info(f"Received valid completion on attempt {attempt}")
                return CompletionResult.success(reply)

            except groq.APIStatusError as e:
                if e.status_code in (401, 403):
                    logger.error(f"Authentication error from completion service: {e.status_code}")
                    return CompletionResult.failure(ErrorCode.AUTH_ERROR)
                if e.status_code == 429:
                    last_code = ErrorCode.RATE_LIMIT
                else:
                    last_code = ErrorCode.API_ERROR
                logger.warning(
                    f"Completion service error {e.status_code} "
                    f"(attempt {attempt} of {budget.max_attempts})"
                )

            except (groq.APIConnectionError, asyncio.TimeoutError) as e:
                last_code = ErrorCode.NETWORK_ERROR
                logger.warning(
                    f"Completion transport failure: {e!r} "
                    f"(attempt {attempt} of {budget.max_attempts})"
                )

            except MalformedResponseError as e:
                last_code = ErrorCode.API_ERROR
                logger.warning(f"{e} (attempt {attempt} of {budget.max_attempts})")

            except Exception as e:
                last_code = ErrorCode.API_ERROR
                logger.exception(f"Unexpected completion failure: {e}")

            if not budget.exhausted:
                await asyncio.sleep(budget.delay())

        logger.error(f"Completion failed after {budget.attempt} attempts: {last_code.value}")
        return CompletionResult.failure(last_code)

    async def _request(self, messages: List[Dict[str, str]]) -> str:
        """Run one blocking completion call under the configured timeout."""
        client = self._get_client()
        loop = asyncio.get_running_loop()
        response = await asyncio.wait_for(
            loop.run_in_executor(
                None,
                lambda: client.chat.completions.create(
                    model=self.config.model,
                    messages=messages,
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens
                )
            ),
            timeout=self.config.timeout
        )
        return self._extract_reply(response)

    def _extract_reply(self, response: Any) -> str:
        """
        Validate the response shape and pull out the reply text.

        Raises:
            MalformedResponseError: If there is no non-empty reply.
        """
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError):
            raise MalformedResponseError("Unexpected response format from completion service")

        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError("Completion service returned an empty reply")
        return content.strip()
