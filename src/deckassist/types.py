"""Shared Pydantic models for deckassist."""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# ── Enums ──


class CacheType(StrEnum):
    AI = "ai"
    IMAGE = "image"
    TRANSLATION = "translation"
    LANGUAGE_DETECTION = "language-detection"
    OTHER = "other"


class JobStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ImageFormat = Literal["jpeg", "png", "webp"]

# pending -> processing -> {completed | failed}; terminal states have no exits
_ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


# ── Generation jobs ──


class GenerationRequest(BaseModel):
    prompt: str
    negative_prompt: str | None = None
    width: int | None = None
    height: int | None = None
    steps: int | None = None
    cfg_scale: float | None = None
    sampler_name: str | None = None
    seed: int | None = None


class GenerationJob(BaseModel):
    """An image-synthesis job held in the in-process registry."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.PENDING
    request: GenerationRequest
    result: str | None = None
    error: str | None = None
    created_at: float = Field(default_factory=time.time)
    status_history: list[JobStatus] = Field(default_factory=lambda: [JobStatus.PENDING])

    @property
    def prompt(self) -> str:
        return self.request.prompt

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def transition(self, status: JobStatus) -> None:
        """Move to ``status``; raises ValueError on a non-monotonic transition."""
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ValueError(f"Invalid job transition {self.status} -> {status}")
        self.status = status
        self.status_history.append(status)

    def to_public(self) -> dict[str, Any]:
        """Status surface returned to callers."""
        data: dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "prompt": self.prompt,
            "createdAt": datetime.fromtimestamp(self.created_at, tz=timezone.utc).isoformat(),
        }
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data


# ── Backend results ──


class ImageResult(BaseModel):
    url: str
    title: str = "Image"
    thumbnail: str = ""


class LanguageInfo(BaseModel):
    code: str
    name: str
    targets: list[str] | None = None


class DetectionResult(BaseModel):
    language: str
    confidence: float = 0.0


# ── Image processing ──


class ResizeOptions(BaseModel):
    width: int | None = None
    height: int | None = None


class FilterOptions(BaseModel):
    grayscale: bool = False
    blur: float | None = None
    sharpen: bool = False
    rotate: float | None = None


class ProcessOptions(BaseModel):
    resize: ResizeOptions | None = None
    filters: FilterOptions | None = None
    format: ImageFormat = "jpeg"
    quality: int | None = Field(default=None, ge=1, le=100)
    compress: bool = False

    @property
    def effective_quality(self) -> int:
        if self.quality is not None:
            return self.quality
        return 80 if self.compress else 90


# ── Presentations ──


class PresentationRequest(BaseModel):
    prompt: str = Field(min_length=1)
    slide_count: int = Field(default=5, ge=1, le=50)
    language: str | None = None
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)


class SlideOutline(BaseModel):
    title: str
    content: list[str] = Field(default_factory=list)
    notes: str | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _bullets_from_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [line.strip() for line in value.splitlines() if line.strip()]
        return value


class PresentationOutline(BaseModel):
    """Shape the text model is asked to reply with."""

    title: str = "Untitled presentation"
    slides: list[SlideOutline] = Field(min_length=1)


class PresentationResult(BaseModel):
    presentation_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: Literal["success", "failed"] = "success"
    title: str = ""
    slides: list[SlideOutline] = Field(default_factory=list)
    error: str | None = None
