import io
import json
import os
import tempfile
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Point settings at throwaway storage before any app module is imported
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="study_assistant_tests_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_ROOT / 'test_study_assistant.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP_ROOT / "uploads")
os.environ["LOG_TO_FILE"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "development"
os.environ["ANTHROPIC_API_KEY"] = ""

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MIME = "application/pdf"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


def make_materials(num_cards: int = 6, num_questions: int = 5, language: str = "english") -> dict:
    """A well-formed model answer with a mix of question types."""
    true_label, false_label = ("True", "False") if language == "english" else ("صحيح", "خطأ")
    questions = []
    for i in range(num_questions):
        if i % 3 == 0:
            options = [f"Option {i}-a", f"Option {i}-b", f"Option {i}-c", f"Option {i}-d"]
            questions.append({
                "type": "mcq", "question": f"Question {i}?", "options": options,
                "correctAnswer": options[1], "explanation": "Covered in section one.",
            })
        elif i % 3 == 1:
            questions.append({
                "type": "true_false", "question": f"Statement {i}.", "options": [true_label, false_label],
                "correctAnswer": true_label, "explanation": "Stated directly.",
            })
        else:
            questions.append({
                "type": "short_answer", "question": f"Explain {i}.", "options": [],
                "correctAnswer": "Because of photosynthesis.", "explanation": "See the summary.",
            })
    return {
        "summary": "Plants convert light into chemical energy.",
        "flashcards": [{"question": f"Term {i}", "answer": f"Definition {i}"} for i in range(num_cards)],
        "examQuestions": questions,
    }


class FakeGenerator:
    """Stands in for the Anthropic-backed generator and records every prompt."""

    def __init__(self):
        self.prompts: list[str] = []
        self.response: str = json.dumps(make_materials())
        self.error: Exception | None = None
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.response

    async def close(self) -> None:
        self.closed = True


def make_docx(text: str) -> bytes:
    from docx import Document

    doc = Document()
    for paragraph in text.split("\n\n"):
        doc.add_paragraph(paragraph)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def words(n: int) -> str:
    vocabulary = ["chlorophyll", "light", "energy", "glucose", "leaf", "carbon", "water", "oxygen"]
    return " ".join(vocabulary[i % len(vocabulary)] for i in range(n))


@pytest.fixture(scope="session")
def app():
    import main as main_module
    from app.db.database import Base, engine

    app_instance = main_module.app
    app_instance.router.on_startup.clear()
    app_instance.router.on_shutdown.clear()

    Base.metadata.create_all(bind=engine)
    return app_instance


@pytest.fixture()
def generator(app):
    fake = FakeGenerator()
    app.state.generator = fake
    return fake


@pytest.fixture()
def db_session(app):
    from app.db.database import SessionLocal
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(app, generator):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def upload_dir():
    from app.core.config import settings
    path = Path(settings.upload_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture()
def make_user(db_session):
    """Create a user directly, bypassing the lazy-creation endpoint."""
    from datetime import datetime, timezone
    from app.models.user import User

    def _make(documents_used: int = 0, monthly_limit: int = 5, last_reset=None) -> "User":
        user = User(
            clerk_id=f"clerk_{uuid.uuid4().hex[:12]}",
            email="student@test.com",
            name="Test Student",
            documents_used=documents_used,
            monthly_limit=monthly_limit,
            last_reset=last_reset or datetime.now(timezone.utc),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_document(db_session):
    """Insert a document directly (bypass AI generation)."""
    from app.models.document import Document

    def _make(user, num_cards: int = 6) -> "Document":
        materials = make_materials(num_cards=num_cards)
        document = Document(
            user_id=user.id,
            filename="1700000000000-42-notes.docx",
            original_name="notes.docx",
            file_type=DOCX_MIME,
            file_size=1234,
            language="english",
            summary=materials["summary"],
            flashcards=materials["flashcards"],
            exam_questions=materials["examQuestions"],
        )
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document

    return _make


@pytest.fixture()
def materials_factory():
    return make_materials


@pytest.fixture()
def docx_factory():
    return make_docx


@pytest.fixture()
def text_of_words():
    return words
