from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field
from datetime import datetime

class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str

class ChatRequest(BaseModel):
    messages: List[ChatMessageIn] = Field(
        ...,
        description="Conversation history; the last entry must be the new user message"
    )

class ToolCall(BaseModel):
    """A tool invocation requested by the completion service."""
    id: str
    name: str
    arguments: str = Field("{}", description="Raw JSON argument payload as sent by the model")

    def to_record(self) -> Dict[str, Any]:
        # Same shape the completion API uses, so it can be replayed as-is
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

class CompletionMessage(BaseModel):
    """One message returned by the completion service."""
    content: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)

    def to_openai(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [tc.to_record() for tc in self.tool_calls]
        return message

class ChatTurnResult(BaseModel):
    message_id: str
    content: str
    tool_calls: Optional[List[Dict[str, Any]]] = None

class AssistantMessageOut(BaseModel):
    role: str = "assistant"
    content: str

class ChatResponse(BaseModel):
    message_id: str
    message: AssistantMessageOut
    tool_calls: Optional[List[Dict[str, Any]]] = None

class StoredMessage(BaseModel):
    id: str
    role: str
    content: str
    tool_calls: Optional[List[Dict[str, Any]]] = None
    created_at: datetime

    class Config:
        from_attributes = True

class MessageHistoryResponse(BaseModel):
    messages: List[StoredMessage]
