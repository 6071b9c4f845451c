"""Persistence for documents, flashcard progress and exam attempts."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging_config import get_logger
from app.models.document import Document
from app.models.progress import FlashcardProgress, ExamAttempt
from app.models.user import User
from app.schemas.study import StudyMaterials
from app.services.upload_storage import StoredUpload

logger = get_logger(__name__)


def get_user_by_id(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def get_document(db: Session, document_id: int) -> Document:
    document = db.query(Document).filter(Document.id == document_id).first()
    if not document:
        raise NotFoundError("Document not found")
    return document


def get_owned_document(db: Session, document_id: int, user_id: int) -> Document:
    """Like ``get_document``, but another user's document is reported as missing."""
    document = get_document(db, document_id)
    if document.user_id != user_id:
        logger.warning(f"User {user_id} referenced document {document_id} owned by user {document.user_id}")
        raise NotFoundError("Document not found")
    return document


def list_user_documents(db: Session, user_id: int) -> list[Document]:
    return (
        db.query(Document)
        .filter(Document.user_id == user_id)
        .order_by(Document.upload_date.desc(), Document.id.desc())
        .all()
    )


def create_document(
    db: Session,
    user: User,
    stored: StoredUpload,
    language: str,
    materials: StudyMaterials,
) -> Document:
    """
    Stage a document row in the current transaction. The caller commits,
    so the row and the quota increment land together.
    """
    document = Document(
        user_id=user.id,
        filename=stored.filename,
        original_name=stored.original_name,
        file_type=stored.content_type,
        file_size=stored.size,
        language=language,
        summary=materials.summary,
        flashcards=[card.model_dump(by_alias=True) for card in materials.flashcards],
        exam_questions=[q.model_dump(by_alias=True) for q in materials.exam_questions],
    )
    db.add(document)
    db.flush()
    return document


def delete_document(db: Session, document_id: int) -> None:
    document = get_document(db, document_id)
    db.delete(document)
    db.commit()
    logger.info(f"Deleted document {document_id}")


def upsert_flashcard_progress(
    db: Session,
    user_id: int,
    document_id: int,
    card_index: int,
    mastered: bool,
) -> FlashcardProgress:
    """Find the (user, document, card) row and update it, else create it."""
    get_user_by_id(db, user_id)
    document = get_owned_document(db, document_id, user_id)
    if not 0 <= card_index < len(document.flashcards or []):
        raise ValidationError(
            f"cardIndex {card_index} is out of range for a deck of {len(document.flashcards or [])} cards"
        )

    def _find() -> FlashcardProgress | None:
        return db.query(FlashcardProgress).filter(
            FlashcardProgress.user_id == user_id,
            FlashcardProgress.document_id == document_id,
            FlashcardProgress.card_index == card_index,
        ).first()

    now = datetime.now(timezone.utc)
    progress = _find()
    if progress:
        progress.mastered = mastered
        progress.last_reviewed = now
        db.commit()
    else:
        progress = FlashcardProgress(
            user_id=user_id,
            document_id=document_id,
            card_index=card_index,
            mastered=mastered,
            last_reviewed=now,
        )
        db.add(progress)
        try:
            db.commit()
        except IntegrityError:
            # Another request created the row between our read and insert
            db.rollback()
            progress = _find()
            if progress is None:
                raise
            progress.mastered = mastered
            progress.last_reviewed = now
            db.commit()

    db.refresh(progress)
    return progress


def create_exam_attempt(
    db: Session,
    user_id: int,
    document_id: int,
    score: int,
    total_questions: int,
    answers: Any,
) -> ExamAttempt:
    get_user_by_id(db, user_id)
    get_owned_document(db, document_id, user_id)
    if not 0 <= score <= total_questions:
        raise ValidationError("score must be between 0 and totalQuestions")

    attempt = ExamAttempt(
        user_id=user_id,
        document_id=document_id,
        score=score,
        total_questions=total_questions,
        answers=answers,
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    logger.info(f"Recorded exam attempt {attempt.id} | user={user_id} | score={score}/{total_questions}")
    return attempt
