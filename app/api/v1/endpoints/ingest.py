import logging
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File

from app.api import deps
from app.core.config import settings
from app.core.exceptions import ExtractionError, SchemaDiscoveryError, StoreError
from app.schemas.document import IngestResponse
from app.services.ingestion import IngestionPipeline

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/ingest", response_model=IngestResponse, status_code=201)
async def ingest_document(
    file: Optional[UploadFile] = File(None),
    pipeline: IngestionPipeline = Depends(deps.get_ingestion_pipeline),
) -> Any:
    """
    Upload a document (plain text or PDF) and run it through the ingestion pipeline.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="Missing file")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=400,
            detail=f"File exceeds the {settings.MAX_UPLOAD_BYTES} byte upload limit",
        )

    media_type = file.content_type or "application/octet-stream"
    try:
        result = await pipeline.ingest(data, media_type, file.filename)
    except ExtractionError as e:
        raise HTTPException(status_code=422, detail=f"Text extraction failed: {e.message}")
    except SchemaDiscoveryError as e:
        raise HTTPException(status_code=502, detail=f"Schema discovery failed: {e.message}")
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Could not save document: {e.message}")

    warning = None
    if result.embedding_error:
        logger.warning(f"Document {result.document.id} stored without embedding")
        warning = (
            "Document stored, but semantic search is unavailable for it: "
            f"{result.embedding_error}"
        )

    return {
        "document_id": result.document.id,
        "filename": result.document.filename,
        "status": result.document.status,
        "embedded": result.embedded,
        "warning": warning,
        "stages": result.stages,
    }
