from typing import List
import logging

import numpy as np
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StoreError
from app.models import Document, DocumentEmbedding

logger = logging.getLogger(__name__)

class RetrievedRecord(BaseModel):
    record_id: str
    distance: float
    text: str

class VectorRetriever:
    """
    Nearest-neighbour lookup over a single document's embeddings.

    Uses pgvector's L2 operator on PostgreSQL. Other dialects (SQLite in
    tests) rank the document's vectors in Python with the same metric.
    Results are ordered by ascending distance, ties by insertion order.
    """

    def __init__(self, db: Session):
        self.db = db

    def _is_postgres(self) -> bool:
        try:
            return self.db.get_bind().dialect.name == "postgresql"
        except Exception:
            return False

    def retrieve(self, document_id: str, query_vector: List[float], k: int = 3) -> List[RetrievedRecord]:
        try:
            if self._is_postgres():
                records = self._retrieve_pgvector(document_id, query_vector, k)
            else:
                records = self._retrieve_in_memory(document_id, query_vector, k)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Vector search failed: {e}") from e

        logger.info(f"Retrieved {len(records)} record(s) for document {document_id}")
        return records

    def _retrieve_pgvector(self, document_id: str, query_vector: List[float], k: int) -> List[RetrievedRecord]:
        distance = DocumentEmbedding.vector.l2_distance(query_vector)
        rows = (
            self.db.query(DocumentEmbedding.id, Document.text, distance.label("distance"))
            .join(Document, Document.id == DocumentEmbedding.document_id)
            .filter(DocumentEmbedding.document_id == document_id)
            .order_by(distance, DocumentEmbedding.created_at, DocumentEmbedding.id)
            .limit(k)
            .all()
        )
        return [
            RetrievedRecord(record_id=row.id, distance=float(row.distance), text=row.text)
            for row in rows
        ]

    def _retrieve_in_memory(self, document_id: str, query_vector: List[float], k: int) -> List[RetrievedRecord]:
        rows = (
            self.db.query(DocumentEmbedding, Document.text)
            .join(Document, Document.id == DocumentEmbedding.document_id)
            .filter(DocumentEmbedding.document_id == document_id)
            .order_by(DocumentEmbedding.created_at, DocumentEmbedding.id)
            .all()
        )
        if not rows:
            return []

        query = np.asarray(query_vector, dtype=float)
        scored = [
            (float(np.linalg.norm(np.asarray(embedding.vector, dtype=float) - query)), embedding.id, text)
            for embedding, text in rows
        ]
        # sorted() is stable, so equal distances keep insertion order
        scored = sorted(scored, key=lambda item: item[0])[:k]
        return [RetrievedRecord(record_id=rid, distance=dist, text=text) for dist, rid, text in scored]
