from datetime import datetime

from app.schemas.study import CamelModel, Flashcard, ExamQuestion


class DocumentResponse(CamelModel):
    """Stored document with its study materials."""
    id: int
    user_id: int
    filename: str
    original_name: str
    file_type: str
    file_size: int
    language: str
    summary: str
    flashcards: list[Flashcard]
    exam_questions: list[ExamQuestion]
    upload_date: datetime | None = None


class DocumentEnvelope(CamelModel):
    document: DocumentResponse


class UploadedDocument(CamelModel):
    """Trimmed document returned straight after an upload; ``filename`` is the client's name."""
    id: int
    filename: str
    summary: str
    flashcards: list[Flashcard]
    exam_questions: list[ExamQuestion]
    upload_date: datetime | None = None


class UploadResponse(CamelModel):
    success: bool = True
    document: UploadedDocument


class DeleteResponse(CamelModel):
    success: bool = True
    message: str
