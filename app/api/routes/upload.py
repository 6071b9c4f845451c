from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from app.api.deps import get_upload_pipeline
from app.core.config import settings
from app.core.rate_limit import limiter
from app.schemas.document import UploadResponse, UploadedDocument
from app.services.file_processor import get_supported_formats
from app.services.upload_pipeline import UploadPipeline

router = APIRouter(prefix="/upload", tags=["Upload"])


@router.get("/formats")
def get_upload_formats():
    """Get information about supported file upload formats."""
    return get_supported_formats()


@router.post("", response_model=UploadResponse)
@limiter.limit(settings.upload_rate_limit)
async def upload_document(
    request: Request,
    file: Optional[UploadFile] = File(None),
    clerk_id: Optional[str] = Form(None, alias="clerkId"),
    language: Optional[str] = Form("english"),
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
):
    """
    Generate a summary, flashcards and exam questions from an uploaded file.

    Accepts PDF, DOCX and PPTX up to the configured size ceiling. The upload
    counts against the user's monthly quota only if everything succeeds.
    """
    try:
        document = await pipeline.run(file, clerk_id, language)
    finally:
        request.state.user_id = pipeline.user_id
        request.state.pipeline_stage = (pipeline.failed_at or pipeline.stage).value

    return UploadResponse(
        document=UploadedDocument(
            id=document.id,
            filename=document.original_name,
            summary=document.summary,
            flashcards=document.flashcards,
            exam_questions=document.exam_questions,
            upload_date=document.upload_date,
        )
    )
