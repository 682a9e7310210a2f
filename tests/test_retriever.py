from app.services.retriever import VectorRetriever
from tests.conftest import DIMENSIONS

def _vector(value):
    return [float(value)] * DIMENSIONS

def _document(store, name, vector):
    return store.create_document(
        filename=name,
        text=f"Text of {name}",
        discovered_schema={},
        extracted=None,
        confidence=None,
        vector=vector,
    )

def test_document_without_embeddings_returns_empty(db, store):
    doc = _document(store, "short.txt", None)
    assert VectorRetriever(db).retrieve(doc.id, _vector(1), k=3) == []

def test_results_are_scoped_to_the_document(db, store):
    target = _document(store, "target.txt", _vector(5))
    _document(store, "other.txt", _vector(1))

    hits = VectorRetriever(db).retrieve(target.id, _vector(1), k=3)

    assert len(hits) == 1
    assert hits[0].text == "Text of target.txt"

def test_distance_is_euclidean(db, store):
    doc = _document(store, "doc.txt", [0.0] * DIMENSIONS)
    query = [3.0, 4.0] + [0.0] * (DIMENSIONS - 2)

    hits = VectorRetriever(db).retrieve(doc.id, query, k=3)

    assert abs(hits[0].distance - 5.0) < 1e-6

def test_nearest_first_with_ties_in_insertion_order(db, store):
    from datetime import datetime, timedelta
    from app.models import DocumentEmbedding

    doc = _document(store, "multi.txt", None)
    start = datetime(2024, 1, 1)
    rows = [
        DocumentEmbedding(id="far", document_id=doc.id, vector=_vector(9), created_at=start),
        DocumentEmbedding(id="tie-b", document_id=doc.id, vector=_vector(2), created_at=start + timedelta(seconds=1)),
        DocumentEmbedding(id="tie-a", document_id=doc.id, vector=_vector(0), created_at=start + timedelta(seconds=2)),
        DocumentEmbedding(id="near", document_id=doc.id, vector=_vector(1), created_at=start + timedelta(seconds=3)),
    ]
    db.add_all(rows)
    db.commit()

    hits = VectorRetriever(db).retrieve(doc.id, _vector(1), k=3)

    # tie-b and tie-a are equally far from the query; tie-b was inserted first
    assert [h.record_id for h in hits] == ["near", "tie-b", "tie-a"]
    assert hits[0].distance == 0.0
    assert hits[1].distance == hits[2].distance
