import logging
from typing import Any
from fastapi import APIRouter, Depends, HTTPException

from app.api import deps
from app.core.exceptions import (
    CompletionError,
    EmbeddingError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from app.schemas.chat import ChatRequest, ChatResponse, MessageHistoryResponse
from app.services.chat.orchestrator import ConversationOrchestrator
from app.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter()

TURN_FAILED = "Your message was saved, but no reply could be produced. Please try again."

@router.post("/documents/{document_id}/chat", response_model=ChatResponse)
async def chat_with_document(
    document_id: str,
    request: ChatRequest,
    orchestrator: ConversationOrchestrator = Depends(deps.get_orchestrator),
) -> Any:
    """
    Answer the last user message using retrieval over the document plus tools.
    """
    try:
        turn = await orchestrator.respond(document_id, request.messages)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    except (EmbeddingError, CompletionError) as e:
        logger.error(f"Chat turn for {document_id} failed: {e.message}")
        raise HTTPException(status_code=502, detail=f"{TURN_FAILED} ({e.message})")
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {
        "message_id": turn.message_id,
        "message": {"role": "assistant", "content": turn.content},
        "tool_calls": turn.tool_calls,
    }

@router.get("/documents/{document_id}/messages", response_model=MessageHistoryResponse)
def get_messages(document_id: str, store: DocumentStore = Depends(deps.get_document_store)) -> Any:
    """
    The document's chat transcript in creation order.
    """
    try:
        store.get_document(document_id)
        messages = store.list_messages(document_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {"messages": messages}
