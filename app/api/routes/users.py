from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.schemas.document import DocumentResponse
from app.schemas.user import UserOverviewResponse, UserSummary
from app.services import document_service, quota_service

router = APIRouter(tags=["Users"])


@router.get("/user/{clerk_id}", response_model=UserOverviewResponse)
def get_user_overview(
    clerk_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Return usage and documents for a user, creating the user on first visit.

    The monthly counter is reset here once 30 days have passed since the
    last reset.
    """
    user = quota_service.get_or_create_user(db, clerk_id, default_email=email, default_name=name)
    user = quota_service.maybe_reset(db, user)
    documents = document_service.list_user_documents(db, user.id)
    return UserOverviewResponse(
        user=UserSummary.model_validate(user),
        documents=[DocumentResponse.model_validate(d) for d in documents],
    )
