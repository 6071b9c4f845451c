from app.schemas.study import Flashcard, ExamQuestion, StudyMaterials
from app.schemas.document import DocumentResponse, UploadResponse
from app.schemas.user import UserSummary, UserOverviewResponse
from app.schemas.progress import FlashcardProgressCreate, ExamAttemptCreate

__all__ = [
    "Flashcard", "ExamQuestion", "StudyMaterials",
    "DocumentResponse", "UploadResponse",
    "UserSummary", "UserOverviewResponse",
    "FlashcardProgressCreate", "ExamAttemptCreate",
]
