from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.services.ai_service import StudyMaterialGenerator
from app.services.upload_pipeline import UploadPipeline


def get_generator(request: Request) -> StudyMaterialGenerator:
    """The generation client built at startup and kept on ``app.state``."""
    return request.app.state.generator


def get_upload_pipeline(
    db: Session = Depends(get_db),
    generator: StudyMaterialGenerator = Depends(get_generator),
) -> UploadPipeline:
    return UploadPipeline(db, generator)
