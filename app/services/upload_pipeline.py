"""
Upload-to-study-material pipeline.

RECEIVED -> QUOTA_CHECKED -> EXTRACTED -> VALIDATED -> GENERATED -> PERSISTED -> COMPLETED,
with FAILED reachable from any stage. The transient copy of the upload is
removed on every exit path.
"""

import enum
import time

from fastapi import UploadFile
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import InsufficientContentError, NotFoundError, ValidationError
from app.core.logging_config import get_logger
from app.models.document import Document
from app.services import document_service, file_processor, quota_service
from app.services.ai_service import StudyMaterialGenerator, generate_study_materials
from app.services.prompt_builder import parse_language
from app.services.upload_storage import transient_upload

logger = get_logger(__name__)

INSUFFICIENT_CONTENT_MESSAGE = "Could not extract enough text from file"


class PipelineStage(str, enum.Enum):
    RECEIVED = "received"
    QUOTA_CHECKED = "quota_checked"
    EXTRACTED = "extracted"
    VALIDATED = "validated"
    GENERATED = "generated"
    PERSISTED = "persisted"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadPipeline:
    """Runs one upload through extraction, generation and persistence."""

    def __init__(self, db: Session, generator: StudyMaterialGenerator):
        self.db = db
        self.generator = generator
        self.stage = PipelineStage.RECEIVED
        self.user_id: int | None = None
        self.failed_at: PipelineStage | None = None

    def _advance(self, stage: PipelineStage, detail: str = "") -> None:
        self.stage = stage
        logger.info(f"Upload pipeline -> {stage.value}" + (f" | {detail}" if detail else ""))

    async def run(
        self,
        upload: UploadFile | None,
        clerk_id: str | None,
        language: str | None,
    ) -> Document:
        # Input checks happen before anything touches the disk
        if upload is None or not upload.filename:
            raise ValidationError("No file uploaded")
        file_processor.validate_content_type(upload.content_type)
        if not clerk_id:
            raise ValidationError("clerkId is required")
        resolved_language = parse_language(language)

        start_time = time.time()
        self._advance(PipelineStage.RECEIVED, f"file={upload.filename} | clerk_id={clerk_id}")
        try:
            async with transient_upload(upload, settings.upload_dir, settings.max_upload_bytes) as stored:
                document = await self._process(stored, clerk_id, resolved_language.value)
        except Exception as e:
            self.failed_at = self.stage
            self.stage = PipelineStage.FAILED
            logger.warning(f"Upload pipeline failed at {self.failed_at.value}: {type(e).__name__}: {e}")
            raise

        duration_ms = (time.time() - start_time) * 1000
        self._advance(PipelineStage.COMPLETED, f"document={document.id} | duration={duration_ms:.2f}ms")
        return document

    async def _process(self, stored, clerk_id: str, language: str) -> Document:
        user = quota_service.get_user_by_clerk_id(self.db, clerk_id)
        if not user:
            raise NotFoundError("User not found")
        self.user_id = user.id

        user = quota_service.maybe_reset(self.db, user)
        quota_service.check_and_reserve(user)
        self._advance(PipelineStage.QUOTA_CHECKED, f"user={user.id} | used={user.documents_used}/{user.monthly_limit}")

        text = file_processor.extract_text(stored.path, stored.content_type)
        self._advance(PipelineStage.EXTRACTED, f"chars={len(text)}")

        if len(text.strip()) < settings.min_extracted_chars:
            raise InsufficientContentError(INSUFFICIENT_CONTENT_MESSAGE)
        self._advance(PipelineStage.VALIDATED)

        materials = await generate_study_materials(self.generator, text, language)
        self._advance(PipelineStage.GENERATED)

        document = document_service.create_document(self.db, user, stored, language, materials)
        quota_service.increment(self.db, user)
        self.db.commit()
        self.db.refresh(document)
        self.db.refresh(user)
        self._advance(PipelineStage.PERSISTED, f"document={document.id} | used={user.documents_used}/{user.monthly_limit}")
        return document
