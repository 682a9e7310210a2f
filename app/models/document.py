from sqlalchemy import Column, String, Text, ForeignKey, JSON, DateTime
from sqlalchemy.orm import relationship
from pgvector.sqlalchemy import Vector
from app.core.config import settings
from app.core.database import Base
import enum
from datetime import datetime
import uuid

class IngestionState(str, enum.Enum):
    UPLOADED = "UPLOADED"
    EXTRACTING = "EXTRACTING"
    SANITIZING = "SANITIZING"
    REDACTING = "REDACTING"
    SCHEMA_DISCOVERY = "SCHEMA_DISCOVERY"
    EMBEDDING = "EMBEDDING"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    ERROR = "ERROR"

class DocumentStatus(str, enum.Enum):
    # Only terminal states ever reach the store
    REVIEW_REQUIRED = IngestionState.REVIEW_REQUIRED.value
    ERROR = IngestionState.ERROR.value

class Document(Base):
    """
    A fully ingested document. Written once at the end of the ingestion
    pipeline and read-only afterwards.
    """
    __tablename__ = "documents"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    filename = Column(String, nullable=False)
    # Sanitized and redacted; never contains NUL
    text = Column(Text, nullable=False)
    doc_schema = Column("schema", JSON, nullable=False, default=dict)
    extracted = Column(JSON(none_as_null=True), nullable=True)
    confidence = Column(JSON(none_as_null=True), nullable=True)
    status = Column(String, nullable=False, default=DocumentStatus.REVIEW_REQUIRED.value)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    embeddings = relationship(
        "DocumentEmbedding",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    messages = relationship(
        "ChatMessage",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChatMessage.created_at",
    )

class DocumentEmbedding(Base):
    """
    Stores the semantic vector of a document's full redacted text.
    """
    __tablename__ = "document_embeddings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    document_id = Column(
        String, ForeignKey("documents.id", ondelete="CASCADE"), index=True, nullable=False
    )
    vector = Column(Vector(settings.EMBEDDING_DIMENSIONS), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    document = relationship("Document", back_populates="embeddings")
