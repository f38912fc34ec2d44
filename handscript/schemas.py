from pydantic import BaseModel, Field


class TranscriptionResult(BaseModel):
    wordCount: int = Field(..., ge=0)
    transcription: str


class ErrorResponse(BaseModel):
    error: str


class ActivePrompt(BaseModel):
    variant: str
    preserveLineBreaks: bool
    prompt: str


class HealthResponse(BaseModel):
    status: str = "ok"
    model: str
    promptVariant: str
