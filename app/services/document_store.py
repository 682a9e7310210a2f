import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, StoreError
from app.models import ChatMessage, Document, DocumentEmbedding, DocumentStatus

logger = logging.getLogger(__name__)

class DocumentStore:
    """
    Relational persistence for documents, their embeddings and chat transcripts.

    Documents are written once; embeddings and messages are append-only.
    Every SQLAlchemy failure is rolled back and re-raised as StoreError.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_document(
        self,
        filename: str,
        text: str,
        discovered_schema: Dict[str, Any],
        extracted: Optional[Dict[str, Any]],
        confidence: Optional[Dict[str, float]],
        vector: Optional[List[float]] = None,
    ) -> Document:
        """
        Writes the Document row and, when a vector is given, its single
        embedding row in the same transaction.
        """
        document = Document(
            filename=filename,
            text=text,
            doc_schema=discovered_schema,
            extracted=extracted,
            confidence=confidence,
            status=DocumentStatus.REVIEW_REQUIRED.value,
        )
        try:
            self.db.add(document)
            self.db.flush()
            if vector is not None:
                self.db.add(DocumentEmbedding(document_id=document.id, vector=vector))
            self.db.commit()
            self.db.refresh(document)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to persist document: {e}") from e
        logger.info(f"Stored document {document.id} ({filename}), embedded={vector is not None}")
        return document

    def get_document(self, document_id: str) -> Document:
        try:
            document = self.db.query(Document).filter(Document.id == document_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to load document: {e}") from e
        if not document:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def list_documents(self, limit: int = 50) -> List[Document]:
        try:
            return (
                self.db.query(Document)
                .order_by(Document.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to list documents: {e}") from e

    def count_embeddings(self, document_id: str) -> int:
        try:
            return (
                self.db.query(func.count(DocumentEmbedding.id))
                .filter(DocumentEmbedding.document_id == document_id)
                .scalar()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to count embeddings: {e}") from e

    def append_message(
        self,
        document_id: str,
        role: str,
        content: str,
        tool_calls: Optional[List[Dict[str, Any]]] = None,
    ) -> ChatMessage:
        """
        Appends one message to a document's transcript. created_at is kept
        strictly increasing per document even if the clock has not moved
        since the previous append.
        """
        try:
            last_created = (
                self.db.query(func.max(ChatMessage.created_at))
                .filter(ChatMessage.document_id == document_id)
                .scalar()
            )
            created_at = datetime.utcnow()
            if last_created is not None and created_at <= last_created:
                created_at = last_created + timedelta(microseconds=1)

            message = ChatMessage(
                document_id=document_id,
                role=role,
                content=content,
                tool_calls=tool_calls,
                created_at=created_at,
            )
            self.db.add(message)
            self.db.commit()
            self.db.refresh(message)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to persist {role} message: {e}") from e
        return message

    def list_messages(self, document_id: str) -> List[ChatMessage]:
        try:
            return (
                self.db.query(ChatMessage)
                .filter(ChatMessage.document_id == document_id)
                .order_by(ChatMessage.created_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to load messages: {e}") from e
