from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException

from app.api import deps
from app.core.exceptions import NotFoundError, StoreError
from app.schemas.document import DocumentDetail, DocumentSummary
from app.services.document_store import DocumentStore

router = APIRouter()

@router.get("/documents", response_model=List[DocumentSummary])
def list_documents(store: DocumentStore = Depends(deps.get_document_store)) -> Any:
    """
    The 50 most recently ingested documents, newest first.
    """
    try:
        return store.list_documents(limit=50)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)

@router.get("/documents/{document_id}", response_model=DocumentDetail)
def get_document(document_id: str, store: DocumentStore = Depends(deps.get_document_store)) -> Any:
    try:
        document = store.get_document(document_id)
        embedding_count = store.count_embeddings(document_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return DocumentDetail(
        id=document.id,
        filename=document.filename,
        status=document.status,
        created_at=document.created_at,
        text=document.text,
        schema_=document.doc_schema or {},
        extracted=document.extracted,
        confidence=document.confidence,
        embedding_count=embedding_count,
    )
