from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.schemas.document import DeleteResponse, DocumentEnvelope, DocumentResponse
from app.services import document_service

router = APIRouter(prefix="/document", tags=["Documents"])


@router.get("/{document_id}", response_model=DocumentEnvelope)
def get_document(document_id: int, db: Session = Depends(get_db)):
    document = document_service.get_document(db, document_id)
    return DocumentEnvelope(document=DocumentResponse.model_validate(document))


@router.delete("/{document_id}", response_model=DeleteResponse)
def delete_document(document_id: int, db: Session = Depends(get_db)):
    """Delete a document along with its flashcard progress and exam attempts."""
    document_service.delete_document(db, document_id)
    return DeleteResponse(message="Document deleted")
