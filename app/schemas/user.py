from datetime import datetime

from app.schemas.document import DocumentResponse
from app.schemas.study import CamelModel


class UserSummary(CamelModel):
    id: int
    clerk_id: str
    email: str
    name: str
    documents_used: int
    monthly_limit: int
    remaining_documents: int
    last_reset: datetime


class UserOverviewResponse(CamelModel):
    """User usage plus every document they own, newest first."""
    user: UserSummary
    documents: list[DocumentResponse]
