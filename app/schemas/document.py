from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

class IngestResponse(BaseModel):
    document_id: str
    filename: str
    status: str
    embedded: bool
    # Set when the document was stored but semantic search is unavailable for it
    warning: Optional[str] = None
    stages: List[str] = []

class DocumentSummary(BaseModel):
    id: str
    filename: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True

class DocumentDetail(DocumentSummary):
    text: str
    schema_: Dict[str, Any] = Field(default_factory=dict, alias="schema")
    extracted: Optional[Dict[str, Any]] = None
    confidence: Optional[Dict[str, float]] = None
    embedding_count: int

    class Config:
        from_attributes = True
        populate_by_name = True
