from app.models.document import Document, DocumentEmbedding, DocumentStatus, IngestionState
from app.models.chat import ChatMessage, MessageRole
