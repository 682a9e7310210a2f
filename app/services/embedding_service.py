import logging
from typing import List, Optional

from openai import AsyncOpenAI, APITimeoutError, OpenAIError

from app.core.config import settings
from app.core.exceptions import EmbeddingError

logger = logging.getLogger(__name__)

class EmbeddingService:
    """Generates fixed-dimension semantic embeddings for text."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
    ):
        self.client = client or AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_API_BASE,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            max_retries=settings.LLM_MAX_RETRIES,
        )
        self.model = model or settings.EMBEDDING_MODEL
        self.dimensions = dimensions or settings.EMBEDDING_DIMENSIONS

    async def embed(self, text: str) -> List[float]:
        try:
            response = await self.client.embeddings.create(input=text, model=self.model)
        except APITimeoutError as e:
            raise EmbeddingError(f"Embedding timed out: {e}", stage="EMBEDDING") from e
        except OpenAIError as e:
            raise EmbeddingError(f"Embedding failed: {e}", stage="EMBEDDING") from e

        if not response.data:
            raise EmbeddingError("Embedding service returned no vectors", stage="EMBEDDING")

        vector = list(response.data[0].embedding)
        if len(vector) != self.dimensions:
            raise EmbeddingError(
                f"Expected a {self.dimensions}-dimensional vector, got {len(vector)}",
                stage="EMBEDDING",
            )
        return vector

    async def close(self):
        await self.client.close()
