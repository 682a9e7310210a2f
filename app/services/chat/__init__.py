# Retrieval-augmented conversation over a single document
from app.services.chat.orchestrator import ConversationOrchestrator
from app.services.chat.tools import TOOLS, execute_tool_call

__all__ = [
    "ConversationOrchestrator",
    "TOOLS",
    "execute_tool_call",
]
