from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.database import Base


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Upload metadata
    filename = Column(String(512), nullable=False)  # Name the file was stored under while processing
    original_name = Column(String(255), nullable=False)
    file_type = Column(String(255), nullable=False)  # Declared MIME type
    file_size = Column(Integer, nullable=False)
    language = Column(String(20), nullable=False, default="english")

    # Generated study materials
    summary = Column(Text, nullable=False)
    flashcards = Column(JSON, nullable=False)  # [{"question", "answer"}]
    exam_questions = Column(JSON, nullable=False)  # [{"type", "question", "options", "correctAnswer", "explanation"}]

    upload_date = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="documents")
    flashcard_progress = relationship(
        "FlashcardProgress", back_populates="document", cascade="all, delete-orphan", passive_deletes=True,
    )
    exam_attempts = relationship(
        "ExamAttempt", back_populates="document", cascade="all, delete-orphan", passive_deletes=True,
    )
