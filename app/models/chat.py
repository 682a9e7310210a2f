from sqlalchemy import Column, String, Text, ForeignKey, JSON, DateTime, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
import enum
from datetime import datetime
import uuid

class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

class ChatMessage(Base):
    """
    One entry of a document's append-only chat transcript.
    """
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_document_id_created_at", "document_id", "created_at"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    document_id = Column(
        String, ForeignKey("documents.id", ondelete="CASCADE"), index=True, nullable=False
    )
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    # Tool invocations made while producing an assistant message (not their results)
    tool_calls = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    document = relationship("Document", back_populates="messages")
