"""
Error taxonomy shared by the ingestion pipeline, the conversation
orchestrator and the HTTP layer.

Services raise these; endpoints translate them into HTTP responses.
"""
from typing import Optional


class DocumentIntelligenceError(Exception):
    """Base class for every domain error raised by the services."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class ValidationError(DocumentIntelligenceError):
    """Malformed request: missing file, bad history, last message not from user."""


class NotFoundError(DocumentIntelligenceError):
    """Unknown document id."""


class ExtractionError(DocumentIntelligenceError):
    """Input could not be turned into text (corrupt PDF, extraction timeout)."""


class SchemaDiscoveryError(DocumentIntelligenceError):
    """Completion service returned nothing usable for schema discovery."""


class EmbeddingError(DocumentIntelligenceError):
    """Embedding service failed or returned a vector of the wrong size."""


class CompletionError(DocumentIntelligenceError):
    """Completion service failed during a chat turn."""


class StoreError(DocumentIntelligenceError):
    """Persistence failure."""
