import json
import uuid

import pytest

from app.services.file_processor import DOCX_MIME, PDF_MIME, PPTX_MIME


def _post(client, content: bytes, clerk_id, filename=None, content_type=DOCX_MIME, language=None):
    filename = filename or f"{uuid.uuid4().hex}.docx"
    data = {}
    if clerk_id is not None:
        data["clerkId"] = clerk_id
    if language is not None:
        data["language"] = language
    return client.post("/api/upload", files={"file": (filename, content, content_type)}, data=data)


def _leftovers(upload_dir, filename):
    return [p for p in upload_dir.iterdir() if p.name.endswith(filename)]


def _reload(db_session, user):
    db_session.expire_all()
    db_session.refresh(user)
    return user


# ── Happy path ───────────────────────────────────────────────

class TestUploadSuccess:
    def test_medium_document_generates_and_counts(
        self, client, generator, make_user, db_session, upload_dir, docx_factory, text_of_words, materials_factory,
    ):
        user = make_user(documents_used=1)
        generator.response = json.dumps(materials_factory(num_cards=12, num_questions=8))
        filename = f"{uuid.uuid4().hex}.docx"

        resp = _post(client, docx_factory(text_of_words(1000)), user.clerk_id, filename=filename)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        doc = body["document"]
        assert doc["filename"] == filename
        assert 10 <= len(doc["flashcards"]) <= 15
        assert len(doc["examQuestions"]) == 8
        assert "correctAnswer" in doc["examQuestions"][0]
        assert doc["uploadDate"]

        assert generator.calls == 1
        assert "Create 10-15 flashcards and 8 exam questions." in generator.prompts[0]
        assert _reload(db_session, user).documents_used == 2
        assert _leftovers(upload_dir, filename) == []

    def test_document_is_persisted(self, client, generator, make_user, docx_factory, text_of_words):
        user = make_user()
        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id)
        document_id = resp.json()["document"]["id"]

        stored = client.get(f"/api/document/{document_id}").json()["document"]
        assert stored["userId"] == user.id
        assert stored["fileType"] == DOCX_MIME
        assert stored["language"] == "english"
        assert stored["summary"] == resp.json()["document"]["summary"]

    def test_fenced_response_is_accepted(
        self, client, generator, make_user, docx_factory, text_of_words, materials_factory,
    ):
        user = make_user()
        generator.response = "```json\n" + json.dumps(materials_factory()) + "\n```"
        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id)
        assert resp.status_code == 200

    def test_arabic_language(self, client, generator, make_user, docx_factory, text_of_words, materials_factory):
        user = make_user()
        generator.response = json.dumps(materials_factory(language="arabic"))
        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id, language="arabic")
        assert resp.status_code == 200
        assert "Arabic" in generator.prompts[0]
        assert "صحيح" in generator.prompts[0]

    def test_last_slot_can_be_used(self, client, generator, make_user, db_session, docx_factory, text_of_words):
        user = make_user(documents_used=4, monthly_limit=5)
        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id)
        assert resp.status_code == 200
        assert _reload(db_session, user).documents_used == 5

    def test_very_long_filename(self, client, generator, make_user, upload_dir, docx_factory, text_of_words):
        user = make_user()
        filename = "a" * 240 + ".docx"
        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id, filename=filename)
        assert resp.status_code == 200
        assert resp.json()["document"]["filename"] == filename
        assert not any(p.name.endswith(".docx") and "a" * 150 in p.name for p in upload_dir.iterdir())


# ── Rejected before any work ─────────────────────────────────

class TestUploadRejected:
    def test_no_file(self, client, generator, make_user):
        user = make_user()
        resp = client.post("/api/upload", data={"clerkId": user.clerk_id})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No file uploaded"}

    def test_invalid_type(self, client, generator, make_user, upload_dir):
        user = make_user()
        filename = f"{uuid.uuid4().hex}.txt"
        resp = _post(client, b"plain text", user.clerk_id, filename=filename, content_type="text/plain")
        assert resp.status_code == 400
        assert "Invalid file type" in resp.json()["error"]
        assert _leftovers(upload_dir, filename) == []

    def test_missing_clerk_id(self, client, generator):
        resp = _post(client, b"data", None)
        assert resp.status_code == 400
        assert resp.json() == {"error": "clerkId is required"}

    def test_unsupported_language(self, client, generator, make_user):
        user = make_user()
        resp = _post(client, b"data", user.clerk_id, language="klingon")
        assert resp.status_code == 400
        assert "Unsupported language" in resp.json()["error"]
        assert generator.calls == 0

    def test_unknown_user(self, client, generator, upload_dir):
        filename = f"{uuid.uuid4().hex}.docx"
        resp = _post(client, b"data", "clerk_nobody", filename=filename)
        assert resp.status_code == 404
        assert resp.json() == {"error": "User not found"}
        assert _leftovers(upload_dir, filename) == []

    def test_oversize_upload(self, client, generator, make_user, monkeypatch, upload_dir):
        from app.core.config import settings

        monkeypatch.setattr(settings, "max_upload_size_mb", 0)
        user = make_user()
        filename = f"{uuid.uuid4().hex}.pdf"
        resp = _post(client, b"%PDF-1.4 tiny", user.clerk_id, filename=filename, content_type=PDF_MIME)
        assert resp.status_code == 413
        assert generator.calls == 0
        assert _leftovers(upload_dir, filename) == []


# ── Quota ────────────────────────────────────────────────────

class TestUploadQuota:
    def test_full_quota_rejected_without_work(
        self, client, generator, make_user, db_session, upload_dir, monkeypatch, docx_factory, text_of_words,
    ):
        import app.services.file_processor as file_processor

        extracted = []
        monkeypatch.setattr(file_processor, "extract_text", lambda path, ct: extracted.append(path) or "text")
        user = make_user(documents_used=5, monthly_limit=5)
        filename = f"{uuid.uuid4().hex}.docx"

        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id, filename=filename)
        assert resp.status_code == 403
        assert resp.json() == {"error": "Monthly upload limit reached"}
        assert extracted == []
        assert generator.calls == 0
        assert _reload(db_session, user).documents_used == 5
        assert _leftovers(upload_dir, filename) == []

    def test_expired_window_resets_on_upload(
        self, client, generator, make_user, db_session, docx_factory, text_of_words,
    ):
        from datetime import datetime, timedelta, timezone

        user = make_user(documents_used=5, last_reset=datetime.now(timezone.utc) - timedelta(days=31))
        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id)
        assert resp.status_code == 200
        assert _reload(db_session, user).documents_used == 1

    def test_concurrent_fill_discards_upload(
        self, client, generator, make_user, db_session, monkeypatch, docx_factory, text_of_words,
    ):
        from app.db.database import SessionLocal
        from app.models.document import Document
        from app.models.user import User

        user = make_user(documents_used=4, monthly_limit=5)
        response = generator.response

        async def complete_while_another_upload_lands(prompt):
            other = SessionLocal()
            try:
                other.query(User).filter(User.id == user.id).update({"documents_used": 5})
                other.commit()
            finally:
                other.close()
            return response

        monkeypatch.setattr(generator, "complete", complete_while_another_upload_lands)

        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id)
        assert resp.status_code == 403
        assert _reload(db_session, user).documents_used == 5
        assert db_session.query(Document).filter(Document.user_id == user.id).count() == 0


# ── Failures after the quota check ───────────────────────────

class TestUploadFailures:
    def test_insufficient_text(self, client, generator, make_user, db_session, upload_dir, monkeypatch):
        import app.services.file_processor as file_processor

        seen = []

        def fake_extract(path, content_type):
            seen.append(path)
            return "a short line of text"

        monkeypatch.setattr(file_processor, "extract_text", fake_extract)
        user = make_user()
        filename = f"{uuid.uuid4().hex}.pdf"

        resp = _post(client, b"%PDF-1.4", user.clerk_id, filename=filename, content_type=PDF_MIME)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Could not extract enough text from file"}
        assert generator.calls == 0
        assert len(seen) == 1
        assert not seen[0].exists()
        assert _reload(db_session, user).documents_used == 0
        assert _leftovers(upload_dir, filename) == []

    def test_presentation_has_no_text(self, client, generator, make_user):
        user = make_user()
        resp = _post(client, b"slides", user.clerk_id, filename="deck.pptx", content_type=PPTX_MIME)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Could not extract enough text from file"}
        assert generator.calls == 0

    def test_unreadable_pdf(self, client, generator, make_user):
        user = make_user()
        resp = _post(client, b"not a pdf at all", user.clerk_id, filename="broken.pdf", content_type=PDF_MIME)
        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to process document"
        assert "PDF" in resp.json()["details"]

    def test_generation_error_does_not_count(
        self, client, generator, make_user, db_session, upload_dir, docx_factory, text_of_words,
    ):
        from app.core.exceptions import GenerationError

        generator.error = GenerationError("AI generation failed: overloaded")
        user = make_user(documents_used=2)
        filename = f"{uuid.uuid4().hex}.docx"

        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id, filename=filename)
        assert resp.status_code == 500
        assert resp.json() == {
            "error": "Failed to process document",
            "details": "AI generation failed: overloaded",
        }
        assert _reload(db_session, user).documents_used == 2
        assert _leftovers(upload_dir, filename) == []

    @pytest.mark.parametrize("raw", [
        "Sorry, I cannot help with that.",
        '{"summary": "x", "flashcards": []}',
        '{"summary": "x", "flashcards": [{"question": "q", "answer": "a"}], "examQuestions": '
        '[{"type": "mcq", "question": "q", "options": ["a", "b"], "correctAnswer": "C"}]}',
    ])
    def test_malformed_response_does_not_count(
        self, raw, client, generator, make_user, db_session, docx_factory, text_of_words,
    ):
        from app.models.document import Document

        generator.response = raw
        user = make_user(documents_used=1)

        resp = _post(client, docx_factory(text_of_words(200)), user.clerk_id)
        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to process document"
        assert _reload(db_session, user).documents_used == 1
        assert db_session.query(Document).filter(Document.user_id == user.id).count() == 0


class TestUploadFormats:
    def test_formats_endpoint(self, client):
        resp = client.get("/api/upload/formats")
        assert resp.status_code == 200
        assert PDF_MIME in resp.json()["contentTypes"]


class TestPipelineStages:
    def test_failure_records_stage(self, generator, make_user, db_session, monkeypatch):
        import asyncio
        import io
        import app.services.file_processor as file_processor
        from fastapi import UploadFile
        from starlette.datastructures import Headers
        from app.core.exceptions import InsufficientContentError
        from app.services.upload_pipeline import PipelineStage, UploadPipeline

        monkeypatch.setattr(file_processor, "extract_text", lambda path, ct: "")
        user = make_user()
        upload = UploadFile(
            file=io.BytesIO(b"%PDF-1.4"), filename="empty.pdf", headers=Headers({"content-type": PDF_MIME}),
        )
        pipeline = UploadPipeline(db_session, generator)

        with pytest.raises(InsufficientContentError):
            asyncio.run(pipeline.run(upload, user.clerk_id, "english"))
        assert pipeline.stage is PipelineStage.FAILED
        assert pipeline.failed_at is PipelineStage.EXTRACTED
        assert pipeline.user_id == user.id

    def test_success_reaches_completed(self, generator, make_user, db_session, docx_factory, text_of_words):
        import asyncio
        import io
        from fastapi import UploadFile
        from starlette.datastructures import Headers
        from app.services.upload_pipeline import PipelineStage, UploadPipeline

        user = make_user()
        upload = UploadFile(
            file=io.BytesIO(docx_factory(text_of_words(300))), filename="notes.docx",
            headers=Headers({"content-type": DOCX_MIME}),
        )
        pipeline = UploadPipeline(db_session, generator)

        document = asyncio.run(pipeline.run(upload, user.clerk_id, "english"))
        assert pipeline.stage is PipelineStage.COMPLETED
        assert pipeline.failed_at is None
        assert document.user_id == user.id
        assert document.original_name == "notes.docx"
        assert user.documents_used == 1
