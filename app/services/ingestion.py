import logging
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import DocumentIntelligenceError, EmbeddingError
from app.core.observability import LatencyTracker, StageTrace
from app.models import Document, IngestionState
from app.services.document_store import DocumentStore
from app.services.embedding_service import EmbeddingService
from app.services.schema_discovery import SchemaDiscoveryService
from app.services.text_extractor import LayoutAwareTextExtractor
from app.services.text_safety import redact_pii, sanitize_text

logger = logging.getLogger(__name__)


class IngestionAttempt:
    """
    State of one ingestion attempt.

    UPLOADED -> EXTRACTING -> SANITIZING -> REDACTING -> SCHEMA_DISCOVERY
    -> EMBEDDING -> REVIEW_REQUIRED, or ERROR from any stage. Only the
    terminal states are visible outside the pipeline.
    """

    def __init__(self, filename: str):
        self.filename = filename
        self.trace = StageTrace(IngestionState.UPLOADED.value)
        self.latency = LatencyTracker(scope=filename)
        self.error: Optional[str] = None

    @property
    def state(self) -> IngestionState:
        return IngestionState(self.trace.current)

    def enter(self, state: IngestionState):
        self.trace.advance(state.value)

    def fail(self, error: Exception):
        self.error = str(error)
        self.trace.advance(IngestionState.ERROR.value, error=self.error)

    def summary(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "state": self.state.value,
            "stages": self.trace.states(),
            "latencies_ms": self.latency.get_all_measurements(),
            "error": self.error,
        }


class IngestionResult:
    def __init__(
        self,
        document: Document,
        attempt: IngestionAttempt,
        embedded: bool,
        embedding_error: Optional[str] = None,
    ):
        self.document = document
        self.attempt = attempt
        self.embedded = embedded
        # Set when the document was stored but its embedding could not be produced
        self.embedding_error = embedding_error

    @property
    def stages(self) -> List[str]:
        return self.attempt.trace.states()


class IngestionPipeline:
    """
    Turns uploaded bytes into a persisted, searchable document record.

    Extraction, sanitizing, redaction and schema discovery must all succeed
    before anything is written. Embedding is computed before the write so the
    Document and its Embedding land in one transaction; if embedding fails the
    Document is still written and the failure is reported on the result.
    """

    def __init__(
        self,
        store: DocumentStore,
        schema_discovery: SchemaDiscoveryService,
        embedder: EmbeddingService,
        extractor: Optional[LayoutAwareTextExtractor] = None,
    ):
        self.store = store
        self.schema_discovery = schema_discovery
        self.embedder = embedder
        self.extractor = extractor or LayoutAwareTextExtractor()

    async def ingest(self, data: bytes, media_type: str, filename: str) -> IngestionResult:
        attempt = IngestionAttempt(filename)
        try:
            result = await self._run(attempt, data, media_type, filename)
        except DocumentIntelligenceError as e:
            attempt.fail(e)
            logger.error(f"Ingestion of {filename} failed: {attempt.summary()}")
            raise
        except Exception as e:
            attempt.fail(e)
            logger.exception(f"Unexpected ingestion failure for {filename}")
            raise

        logger.info(f"Ingestion of {filename} finished: {attempt.summary()}")
        return result

    async def _run(self, attempt: IngestionAttempt, data: bytes, media_type: str, filename: str) -> IngestionResult:
        attempt.enter(IngestionState.EXTRACTING)
        with attempt.latency.measure("extract"):
            raw_text = await self.extractor.extract(data, media_type, filename)

        attempt.enter(IngestionState.SANITIZING)
        clean_text = sanitize_text(raw_text)

        attempt.enter(IngestionState.REDACTING)
        redacted = redact_pii(clean_text)

        attempt.enter(IngestionState.SCHEMA_DISCOVERY)
        with attempt.latency.measure("schema_discovery"):
            discovery = await self.schema_discovery.discover(redacted)

        attempt.enter(IngestionState.EMBEDDING)
        vector = None
        embedding_error = None
        if len(redacted.strip()) >= settings.MIN_EMBED_CHARS:
            try:
                with attempt.latency.measure("embed"):
                    vector = await self.embedder.embed(redacted)
            except EmbeddingError as e:
                embedding_error = e.message
                logger.warning(f"Embedding failed for {filename}; storing without vector: {e.message}")
        else:
            logger.info(f"Skipping embedding for {filename}: text shorter than {settings.MIN_EMBED_CHARS} chars")

        with attempt.latency.measure("persist"):
            document = self.store.create_document(
                filename=filename,
                text=redacted,
                discovered_schema=discovery.discovered_schema,
                extracted=discovery.extracted,
                confidence=discovery.confidence,
                vector=vector,
            )
        attempt.enter(IngestionState.REVIEW_REQUIRED)
        return IngestionResult(document, attempt, embedded=vector is not None, embedding_error=embedding_error)
