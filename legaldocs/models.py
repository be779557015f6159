# legaldocs/models.py
from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (Index("ix_documents_user_id_created_at", "user_id", "created_at"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False)     # owning principal (token subject)
    name = Column(String, nullable=False)             # display label
    original_url = Column(Text, nullable=False)       # public url of the uploaded file
    txt_url = Column(Text, nullable=False)            # public url of the extracted text
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "original_url": self.original_url,
            "txt_url": self.txt_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "user_id": self.user_id,
        }
