import json
import logging
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.observability import LatencyTracker
from app.models import Document, MessageRole
from app.schemas.chat import ChatMessageIn, ChatTurnResult
from app.services.chat.tools import TOOLS, execute_tool_call
from app.services.document_store import DocumentStore
from app.services.embedding_service import EmbeddingService
from app.services.llm_service import LLMService
from app.services.retriever import VectorRetriever

logger = logging.getLogger(__name__)

FORMAT_INSTRUCTIONS = """Use the available tools to get more specific information when needed. Prefer get_extracted_data for structured fields and search_document_text for exact details or quotes. Answer questions based on the document content and extracted data.

IMPORTANT: Always format your responses using Markdown. Use proper markdown syntax for:
- Headers (# ## ###)
- Lists (- or *)
- Code blocks (```language)
- Bold (**text**) and italic (*text*)
- Code inline (`code`)
- Links and other markdown features"""


def build_system_message(context_text: str, document: Document, max_chars: int) -> Dict[str, str]:
    excerpt = context_text[:max_chars]
    if len(context_text) > max_chars:
        excerpt += "..."
    content = (
        "You are a helpful assistant that answers questions about documents.\n"
        "You have access to:\n"
        f"1. The document text: {excerpt}\n"
        f"2. Extracted structured data: {json.dumps(document.extracted)}\n"
        f"3. Document schema: {json.dumps(document.doc_schema)}\n\n"
        f"{FORMAT_INSTRUCTIONS}"
    )
    return {"role": MessageRole.SYSTEM.value, "content": content}


class ConversationOrchestrator:
    """
    Runs one chat turn about one document.

    The exchange is bounded to two completion calls: the first may request
    tools, which are executed locally; the second sees the tool results and
    is final. The user message is stored before any external call and the
    assistant message only after the final completion, so a failed turn
    keeps the question and produces no answer.
    """

    def __init__(
        self,
        store: DocumentStore,
        retriever: VectorRetriever,
        llm: LLMService,
        embedder: EmbeddingService,
        top_k: Optional[int] = None,
        context_chars: Optional[int] = None,
    ):
        self.store = store
        self.retriever = retriever
        self.llm = llm
        self.embedder = embedder
        self.top_k = top_k or settings.RETRIEVAL_TOP_K
        self.context_chars = context_chars or settings.CHAT_CONTEXT_CHARS

    async def respond(self, document_id: str, messages: List[ChatMessageIn]) -> ChatTurnResult:
        if not messages:
            raise ValidationError("Missing messages")
        question = messages[-1]
        if question.role != MessageRole.USER.value:
            raise ValidationError("Last message must be from user")

        document = self.store.get_document(document_id)
        latency = LatencyTracker(scope=f"chat:{document_id}")

        # Durable before any external call
        self.store.append_message(document_id, MessageRole.USER.value, question.content)

        with latency.measure("embed_query"):
            query_vector = await self.embedder.embed(question.content)

        with latency.measure("retrieve"):
            hits = self.retriever.retrieve(document_id, query_vector, k=self.top_k)
        context_text = (hits[0].text or document.text) if hits else document.text

        conversation: List[Dict[str, Any]] = [
            build_system_message(context_text, document, self.context_chars),
            *[{"role": m.role, "content": m.content} for m in messages],
        ]

        with latency.measure("completion"):
            first = await self.llm.chat(conversation, tools=TOOLS, tool_choice="auto")

        tool_call_record = None
        final_content = first.content or ""

        if first.tool_calls:
            tool_results = [execute_tool_call(document, tc) for tc in first.tool_calls]
            logger.info(
                f"Executed {len(tool_results)} tool call(s): {[tc.name for tc in first.tool_calls]}"
            )
            # Second and last round: the model may not ask for more tools
            with latency.measure("completion_with_tools"):
                final = await self.llm.chat(
                    conversation + [first.to_openai()] + tool_results,
                    tools=TOOLS,
                    tool_choice="none",
                )
            final_content = final.content or ""
            tool_call_record = [tc.to_record() for tc in first.tool_calls]

        saved = self.store.append_message(
            document_id,
            MessageRole.ASSISTANT.value,
            final_content,
            tool_calls=tool_call_record,
        )
        logger.info(f"Chat turn for {document_id} done in {latency.total_ms():.2f}ms")

        return ChatTurnResult(message_id=saved.id, content=final_content, tool_calls=tool_call_record)
