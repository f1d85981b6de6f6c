"""
Conversation Orchestrator for Mindful.

Owns the message log and connection health, sequences every turn
through the completion gateway and wires the voice pipeline in and out:

    text or transcribed voice -> Gateway -> reply -> (optional) speech
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Set, Tuple

from .fallback import FallbackManager
from .llm import HISTORY_LIMIT, CompletionResult
from .models import ConnectionHealth, Message, Notice, NoticeLevel, Sender
from .nlp import EmotionProfile, SentimentAnalyzer

logger = logging.getLogger(__name__)

DEFAULT_GREETING = "Hello! I'm Mindful, your support assistant. How are you feeling today?"

# Pause between a transcript landing in the input slot and its auto-send
AUTO_SEND_DELAY = 0.5


class OrchestratorError(Exception):
    """Exception raised when the orchestrator encounters an error."""

    def __init__(self, message: str, component: Optional[str] = None):
        self.component = component
        super().__init__(message)


@dataclass(frozen=True)
class TurnResult:
    """Result of a single send() call."""
    user_message: Message
    reply: Optional[Message] = None
    error: Optional[CompletionResult] = None
    fallback: bool = False

    @property
    def ok(self) -> bool:
        return self.reply is not None and not self.fallback


class Orchestrator:
    """
    Stateful conversation client.

    Only one completion request is in flight at a time, so the log
    order always matches the order in which messages were sent.
    """

    def __init__(
        self,
        gateway: Any = None,
        speech_player: Any = None,
        recorder: Any = None,
        analyzer: Optional[SentimentAnalyzer] = None,
        fallback: Optional[FallbackManager] = None,
        speech_enabled: bool = True,
        greeting: Optional[str] = None,
        auto_send_delay: float = AUTO_SEND_DELAY,
        on_notice: Optional[Callable[[Notice], None]] = None,
        on_message: Optional[Callable[[Message], None]] = None,
        on_health_change: Optional[Callable[[ConnectionHealth], None]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            gateway: Object with `async complete(message, history)` returning a CompletionResult
            speech_player: SpeechPlayer for voice output
            recorder: VoiceRecorder for voice input
            analyzer: Sentiment analyzer for message profiles
            fallback: FallbackManager tracking connection health
            speech_enabled: Whether replies are spoken
            greeting: Optional assistant message that opens the conversation
            auto_send_delay: Seconds before a transcript is sent
            on_notice: Callback for transient notices
            on_message: Callback when a message is appended
            on_health_change: Callback when connection health changes
        """
        self._gateway = gateway
        self._speech_player = speech_player
        self._recorder = recorder
        self._analyzer = analyzer or SentimentAnalyzer()
        self._fallback = fallback or FallbackManager()
        self._speech_enabled = speech_enabled
        self.greeting = greeting
        self.auto_send_delay = auto_send_delay

        self.on_notice = on_notice
        self.on_message = on_message
        if on_health_change:
            self._fallback.set_health_change_callback(on_health_change)

        self._messages: List[Message] = []
        self._notices: List[Notice] = []
        self._pending_input = ""
        self._loading = False
        self._lock = asyncio.Lock()
        self._speech_tasks: Set[asyncio.Task] = set()

        if self._speech_player is not None:
            self._speech_player.on_notice = self._notify

        self._seed_greeting()

    # -- observers --------------------------------------------------------

    @property
    def messages(self) -> Tuple[Message, ...]:
        """Conversation log in insertion order."""
        return tuple(self._messages)

    @property
    def is_loading(self) -> bool:
        """True while a completion request is outstanding."""
        return self._loading

    @property
    def health(self) -> ConnectionHealth:
        return self._fallback.health

    @property
    def is_speech_enabled(self) -> bool:
        return self._speech_enabled

    @property
    def is_recording(self) -> bool:
        return self._recorder is not None and self._recorder.is_recording

    @property
    def recording_error(self) -> str:
        return self._recorder.recording_error if self._recorder is not None else ""

    @property
    def notices(self) -> Tuple[Notice, ...]:
        return tuple(self._notices)

    @property
    def pending_input(self) -> str:
        """Text waiting in the input slot (set by voice transcription)."""
        return self._pending_input

    @pending_input.setter
    def pending_input(self, value: str) -> None:
        self._pending_input = value or ""

    # -- setup ------------------------------------------------------------

    async def initialize(
        self,
        use_voice: bool = False,
        backend_url: Optional[str] = None
    ) -> None:
        """
        Build default service clients for any component not injected.

        Args:
            use_voice: Also set up microphone capture and transcription
            backend_url: Talk to a Mindful backend instead of the services directly

        Raises:
            OrchestratorError: If the completion client or voice input cannot be created
        """
        remote = None
        if backend_url:
            from .api_client import APIClient
            remote = APIClient(base_url=backend_url)

        if self._gateway is None:
            try:
                if remote is not None:
                    self._gateway = remote
                else:
                    from .llm import CompletionGateway
                    self._gateway = CompletionGateway()
            except Exception as e:
                raise OrchestratorError(f"Failed to initialize LLM: {e}", component="llm")

        if self._speech_player is None and self._speech_enabled:
            try:
                from .voice import SoundDevicePlayer, SpeechPlayer
                if remote is not None:
                    synthesizer = remote
                else:
                    from .tts import AzureTTSClient
                    synthesizer = AzureTTSClient()
                self._speech_player = SpeechPlayer(
                    synthesizer, SoundDevicePlayer(), on_notice=self._notify
                )
            except Exception as e:
                # Speech output is optional; carry on without it
                logger.warning(f"Failed to initialize TTS: {e}")
                self._speech_enabled = False
                self._notify(Notice(
                    "Voice unavailable",
                    "Spoken replies are turned off because speech synthesis is not configured."
                ))

        if use_voice and self._recorder is None:
            try:
                from .voice import SoundDeviceInput, VoiceRecorder
                if remote is not None:
                    transcriber = remote
                else:
                    from .stt import GroqWhisperClient
                    transcriber = GroqWhisperClient()
                self._recorder = VoiceRecorder(SoundDeviceInput(), transcriber)
            except Exception as e:
                raise OrchestratorError(f"Failed to initialize STT: {e}", component="stt")

    def _require_gateway(self):
        if self._gateway is None:
            raise OrchestratorError(
                "Completion gateway not initialized. Call initialize() first.",
                component="llm"
            )
        return self._gateway

    def _seed_greeting(self) -> None:
        if self.greeting:
            self._append(Message.create(
                self.greeting, Sender.ASSISTANT, EmotionProfile.neutral()
            ))

    # -- conversation -----------------------------------------------------

    async def send(self, text: str) -> Optional[TurnResult]:
        """
        Send a user message and record the assistant's answer.

        Args:
            text: User input text

        Returns:
            TurnResult, or None if the input was blank.
        """
        if not text or not text.strip():
            return None

        gateway = self._require_gateway()
        content = text.strip()

        async with self._lock:
            self._loading = True
            try:
                history = self._messages[-HISTORY_LIMIT:]
                user_message = Message.create(
                    content, Sender.USER, self._analyzer.classify(content)
                )
                self._append(user_message)

                result = await gateway.complete(content, history)

                if result.ok:
                    return self._handle_success(user_message, result)
                return self._handle_failure(user_message, result)
            finally:
                self._loading = False

    def _handle_success(self, user_message: Message, result: CompletionResult) -> TurnResult:
        reply = Message.create(
            result.text, Sender.ASSISTANT, self._analyzer.classify(result.text)
        )
        self._append(reply)
        self._fallback.report_success()
        self._speak(reply.content)
        return TurnResult(user_message=user_message, reply=reply)

    def _handle_failure(self, user_message: Message, result: CompletionResult) -> TurnResult:
        code = result.error_code.value if result.error_code else "unknown"
        logger.error(f"Error generating AI response: {code}")

        fallback_text = self._fallback.report_failure(code)
        if fallback_text is None:
            # First failure of a streak: transient notice only
            self._notify(Notice("Connection Error", result.text, NoticeLevel.ERROR))
            return TurnResult(user_message=user_message, error=result)

        reply = Message.create(fallback_text, Sender.ASSISTANT, EmotionProfile.neutral())
        self._append(reply)
        self._notify(Notice(
            "Connection Issue",
            "Using a fallback response while the AI service is unavailable.",
            NoticeLevel.ERROR
        ))
        self._speak(reply.content)
        return TurnResult(user_message=user_message, reply=reply, error=result, fallback=True)

    def reconnect(self) -> None:
        """Clear the failure streak and degraded flag."""
        self._fallback.reset()
        self._notify(Notice("Reconnecting", "Attempting to reconnect to the AI service..."))

    def reset_conversation(self) -> None:
        """Clear the log (re-seeding the greeting) and connection health."""
        self._messages.clear()
        self._pending_input = ""
        self._fallback.reset()
        self._seed_greeting()

    def _append(self, message: Message) -> None:
        self._messages.append(message)
        if self.on_message:
            self.on_message(message)

    def _notify(self, notice: Notice) -> None:
        self._notices.append(notice)
        if self.on_notice:
            self.on_notice(notice)

    def dismiss_notices(self) -> None:
        self._notices.clear()

    # -- voice output -----------------------------------------------------

    def toggle_voice_output(self) -> bool:
        """
        Turn spoken replies on or off.

        Returns:
            The new setting.
        """
        self._speech_enabled = not self._speech_enabled
        if not self._speech_enabled and self._speech_player is not None:
            self._speech_player.stop()

        if self._speech_enabled:
            self._notify(Notice("Voice enabled", "Text-to-speech is now on."))
        else:
            self._notify(Notice("Voice disabled", "Text-to-speech is now off."))
        return self._speech_enabled

    def _speak(self, text: str) -> None:
        """Hand text to the speech player without waiting for playback."""
        if not self._speech_enabled or self._speech_player is None:
            return
        task = asyncio.create_task(self._speech_player.speak(text))
        self._speech_tasks.add(task)
        task.add_done_callback(self._speech_tasks.discard)

    async def wait_for_speech(self) -> None:
        """Wait until every pending synthesis/playback call has finished."""
        if self._speech_tasks:
            await asyncio.gather(*list(self._speech_tasks), return_exceptions=True)

    # -- voice input ------------------------------------------------------

    async def start_recording(self) -> bool:
        """
        Start capturing voice input.

        Returns:
            True if recording started.
        """
        if self._recorder is None:
            self._notify(Notice(
                "Voice input unavailable",
                "Voice input has not been set up.",
                NoticeLevel.ERROR
            ))
            return False

        started = await self._recorder.start()
        if not started and self._recorder.recording_error:
            self._notify(Notice(
                "Recording failed",
                "Could not access microphone. Please check permissions.",
                NoticeLevel.ERROR
            ))
        return started

    async def stop_recording(self) -> Optional[TurnResult]:
        """
        Stop capturing, transcribe, and auto-send the transcript.

        Returns:
            The TurnResult of the auto-sent message, or None.
        """
        if self._recorder is None:
            return None

        outcome = await self._recorder.stop()
        if outcome is None:
            return None
        if outcome.notice is not None:
            self._notify(outcome.notice)
        if not outcome.text:
            return None
        return await self._dispatch_transcript(outcome.text)

    async def toggle_recording(self) -> Optional[TurnResult]:
        """Start recording if idle, otherwise stop and send."""
        if self.is_recording:
            return await self.stop_recording()
        await self.start_recording()
        return None

    async def _dispatch_transcript(self, text: str) -> Optional[TurnResult]:
        self._pending_input = text
        await asyncio.sleep(self.auto_send_delay)
        pending, self._pending_input = self._pending_input, ""
        return await self.send(pending)

    async def shutdown(self) -> None:
        """
        Shutdown the orchestrator and cleanup resources.
        """
        if self._recorder is not None:
            await self._recorder.close()
        await self.wait_for_speech()
