"""FastAPI routes for the Mindful API."""

import base64
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from mindful.llm import CompletionGateway
from mindful.stt import GroqWhisperClient
from mindful.tts import AzureTTSClient

from ..services import get_gateway, get_synthesizer, get_transcriber
from .models import (
    ChatRequest,
    ChatResponse,
    HealthResponse,
    SynthesizeRequest,
    SynthesizeResponse,
    TranscribeResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    gateway: CompletionGateway = Depends(get_gateway),
    transcriber: GroqWhisperClient = Depends(get_transcriber),
    synthesizer: Optional[AzureTTSClient] = Depends(get_synthesizer)
):
    """
    Health check endpoint.

    Reports whether each external service is configured.
    """
    completion_ready = gateway.check_credential() is None
    services = {
        "completion": "configured" if completion_ready else "misconfigured",
        "transcription": "configured" if transcriber.api_key else "misconfigured",
        "synthesis": "configured" if synthesizer is not None else "unavailable",
    }
    return HealthResponse(
        status="healthy" if completion_ready else "degraded",
        services=services
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    gateway: CompletionGateway = Depends(get_gateway)
):
    """
    Get an assistant reply for a user message.

    Always answers 200; failures carry an error code and a reply the
    client can display as-is.
    """
    result = await gateway.complete(request.message, request.previous_messages)

    if result.ok:
        return ChatResponse(status="success", response=result.text)

    logger.warning(f"Chat request failed: {result.error_code.value}")
    return ChatResponse(
        status="error",
        response=result.text,
        code=result.error_code.value
    )


@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe_audio(
    audio: UploadFile = File(..., description="Audio file to transcribe"),
    language: str = Form("en", description="Language hint"),
    transcriber: GroqWhisperClient = Depends(get_transcriber)
):
    """
    Transcribe audio file to text.

    Args:
        audio: Audio file (WAV, WebM, MP3, ...)
        language: Language hint for the model

    Returns:
        Transcribed text
    """
    audio_data = await audio.read()
    if not audio_data:
        raise HTTPException(status_code=400, detail="No audio data provided")

    logger.info(f"Received audio file: {audio.filename}, size: {len(audio_data)} bytes")

    result = await transcriber.transcribe(
        audio_data,
        language,
        filename=audio.filename or "audio.wav"
    )
    if not result.ok:
        raise HTTPException(status_code=502, detail=f"Transcription failed: {result.error}")

    return TranscribeResponse(text=result.value or "")


@router.post("/synthesize", response_model=SynthesizeResponse)
async def synthesize(
    request: SynthesizeRequest,
    synthesizer: Optional[AzureTTSClient] = Depends(get_synthesizer)
):
    """
    Synthesize speech from text.

    Returns:
        Base64-encoded WAV audio
    """
    if synthesizer is None:
        raise HTTPException(status_code=503, detail="Speech synthesis is not configured")

    if not request.text.strip():
        raise HTTPException(status_code=400, detail="No text provided")

    result = await synthesizer.synthesize(request.text, request.voice)
    if not result.ok:
        raise HTTPException(status_code=502, detail=f"Speech synthesis failed: {result.error}")

    return SynthesizeResponse(
        audio_content=base64.b64encode(result.value).decode("ascii")
    )
