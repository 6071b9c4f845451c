from datetime import datetime
from typing import Any

from pydantic import Field

from app.schemas.study import CamelModel


class FlashcardProgressCreate(CamelModel):
    """Request to mark a flashcard as reviewed."""
    user_id: int
    document_id: int
    card_index: int = Field(ge=0)
    mastered: bool


class FlashcardProgressResponse(CamelModel):
    id: int
    user_id: int
    document_id: int
    card_index: int
    mastered: bool
    last_reviewed: datetime | None = None


class FlashcardProgressEnvelope(CamelModel):
    success: bool = True
    progress: FlashcardProgressResponse


class ExamAttemptCreate(CamelModel):
    """Request to record a finished exam run."""
    user_id: int
    document_id: int
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)
    answers: list[Any] | dict[str, Any]


class ExamAttemptResponse(CamelModel):
    id: int
    user_id: int
    document_id: int
    score: int
    total_questions: int
    answers: list[Any] | dict[str, Any]
    completed_at: datetime | None = None


class ExamAttemptEnvelope(CamelModel):
    success: bool = True
    attempt: ExamAttemptResponse
