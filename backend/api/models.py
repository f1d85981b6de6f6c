"""Pydantic models for API request/response validation."""

from typing import List, Optional
from pydantic import BaseModel, Field


class HistoryMessage(BaseModel):
    """A prior conversation message sent along with a chat request."""
    content: str = Field(..., description="Message text")
    sender: str = Field(..., description="'user' or 'assistant'")


class ChatRequest(BaseModel):
    """Request model for chat/LLM interaction."""
    message: Optional[str] = Field(None, description="User input text")
    previous_messages: List[HistoryMessage] = Field(
        default_factory=list,
        description="Most recent conversation messages, oldest first"
    )


class ChatResponse(BaseModel):
    """Response model for chat/LLM interaction."""
    status: str = Field(..., description="'success' or 'error'")
    response: str = Field(..., description="Assistant reply or a displayable apology")
    code: Optional[str] = Field(None, description="Error code when status is 'error'")


class TranscribeResponse(BaseModel):
    """Response model for audio transcription."""
    text: str = Field(..., description="Transcribed text from audio")


class SynthesizeRequest(BaseModel):
    """Request model for text-to-speech synthesis."""
    text: str = Field(..., description="Text to synthesize")
    voice: Optional[str] = Field(None, description="Voice name, service default if omitted")


class SynthesizeResponse(BaseModel):
    """Response model for text-to-speech synthesis."""
    audio_content: str = Field(..., description="Base64-encoded WAV audio")


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str = Field(..., description="Service status")
    services: dict = Field(..., description="Status of individual services")
