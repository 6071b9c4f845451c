from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.schemas.progress import (
    ExamAttemptCreate,
    ExamAttemptEnvelope,
    ExamAttemptResponse,
    FlashcardProgressCreate,
    FlashcardProgressEnvelope,
    FlashcardProgressResponse,
)
from app.services import document_service

router = APIRouter(tags=["Progress"])


@router.post("/flashcard/progress", response_model=FlashcardProgressEnvelope)
def save_flashcard_progress(request: FlashcardProgressCreate, db: Session = Depends(get_db)):
    """Record whether a card is mastered; repeated calls update the same record."""
    progress = document_service.upsert_flashcard_progress(
        db,
        user_id=request.user_id,
        document_id=request.document_id,
        card_index=request.card_index,
        mastered=request.mastered,
    )
    return FlashcardProgressEnvelope(progress=FlashcardProgressResponse.model_validate(progress))


@router.post("/exam/attempt", response_model=ExamAttemptEnvelope)
def save_exam_attempt(request: ExamAttemptCreate, db: Session = Depends(get_db)):
    attempt = document_service.create_exam_attempt(
        db,
        user_id=request.user_id,
        document_id=request.document_id,
        score=request.score,
        total_questions=request.total_questions,
        answers=request.answers,
    )
    return ExamAttemptEnvelope(attempt=ExamAttemptResponse.model_validate(attempt))
