from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    clerk_id = Column(String(255), unique=True, index=True, nullable=False)  # External auth provider id
    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)

    # Monthly quota
    documents_used = Column(Integer, nullable=False, default=0)
    monthly_limit = Column(Integer, nullable=False, default=5)
    last_reset = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    documents = relationship(
        "Document",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Document.upload_date.desc()",
    )

    @property
    def remaining_documents(self) -> int:
        return max(0, self.monthly_limit - self.documents_used)
