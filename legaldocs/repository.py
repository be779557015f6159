# legaldocs/repository.py
import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs.errors import BackendError
from legaldocs.models import Document

logger = logging.getLogger(__name__)


def as_uuid(value: Union[str, uuid.UUID]) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


class DocumentRepository:
    """
    Row access for the documents table. Every method takes the owning
    principal and never reads or touches another principal's rows.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, *, name: str, original_url: str, txt_url: str, user_id: str) -> Document:
        doc = Document(name=name, original_url=original_url, txt_url=txt_url, user_id=user_id)
        try:
            self.session.add(doc)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Failed to insert document row for user %s", user_id)
            raise BackendError(str(e.orig) if getattr(e, "orig", None) else str(e)) from e
        return doc

    async def list_for_user(self, user_id: str) -> List[Document]:
        try:
            rows = await self.session.execute(
                select(Document)
                .where(Document.user_id == user_id)
                .order_by(Document.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise BackendError(str(e)) from e
        return list(rows.scalars().all())

    async def get_for_user(self, doc_id, user_id: str) -> Optional[Document]:
        did = as_uuid(doc_id)
        if did is None:
            return None
        try:
            rows = await self.session.execute(
                select(Document).where(Document.id == did, Document.user_id == user_id)
            )
        except SQLAlchemyError as e:
            raise BackendError(str(e)) from e
        return rows.scalars().first()

    async def delete_for_user(self, doc_id, user_id: str) -> bool:
        """Returns False (and does nothing) for unknown ids and other principals' rows."""
        did = as_uuid(doc_id)
        if did is None:
            return False
        try:
            result = await self.session.execute(
                delete(Document).where(Document.id == did, Document.user_id == user_id)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise BackendError(str(e)) from e
        return (result.rowcount or 0) > 0
