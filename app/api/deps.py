from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.services.chat.orchestrator import ConversationOrchestrator
from app.services.document_store import DocumentStore
from app.services.embedding_service import EmbeddingService
from app.services.ingestion import IngestionPipeline
from app.services.llm_service import LLMService
from app.services.retriever import VectorRetriever
from app.services.schema_discovery import SchemaDiscoveryService


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_embedding_service(request: Request) -> EmbeddingService:
    return request.app.state.embedding_service


def get_document_store(db: Session = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)


def get_ingestion_pipeline(
    store: DocumentStore = Depends(get_document_store),
    llm: LLMService = Depends(get_llm_service),
    embedder: EmbeddingService = Depends(get_embedding_service),
) -> IngestionPipeline:
    return IngestionPipeline(store, SchemaDiscoveryService(llm), embedder)


def get_orchestrator(
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    llm: LLMService = Depends(get_llm_service),
    embedder: EmbeddingService = Depends(get_embedding_service),
) -> ConversationOrchestrator:
    return ConversationOrchestrator(store, VectorRetriever(db), llm, embedder)
