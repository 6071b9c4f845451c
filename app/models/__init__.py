from app.models.user import User
from app.models.document import Document
from app.models.progress import FlashcardProgress, ExamAttempt

__all__ = [
    "User",
    "Document",
    "FlashcardProgress",
    "ExamAttempt",
]
