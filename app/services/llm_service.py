import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, APITimeoutError, OpenAIError

from app.core.config import settings
from app.core.exceptions import CompletionError
from app.schemas.chat import CompletionMessage, ToolCall

logger = logging.getLogger(__name__)

class LLMService:
    """
    Handle on the chat-completion API.

    Built once per process by the app startup hook and passed to the
    ingestion pipeline and the conversation orchestrator.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_API_BASE,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            max_retries=settings.LLM_MAX_RETRIES,
        )
        self.model = model or settings.COMPLETION_MODEL

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        """
        Single completion in strict JSON mode. Returns the raw message content,
        which the caller is responsible for parsing.
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ],
                response_format={"type": "json_object"},
                temperature=0
            )
        except APITimeoutError as e:
            raise CompletionError(f"Completion timed out: {e}") from e
        except OpenAIError as e:
            raise CompletionError(f"Completion failed: {e}") from e

        if not response.choices:
            return None
        return response.choices[0].message.content

    async def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
    ) -> CompletionMessage:
        """
        One conversational completion. Tool calls requested by the model are
        returned, never executed here.
        """
        kwargs: Dict[str, Any] = {"model": self.model, "messages": messages}
        if tools:
            kwargs["tools"] = tools
            if tool_choice:
                kwargs["tool_choice"] = tool_choice

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except APITimeoutError as e:
            raise CompletionError(f"Completion timed out: {e}") from e
        except OpenAIError as e:
            raise CompletionError(f"Completion failed: {e}") from e

        if not response.choices:
            raise CompletionError("Completion returned no choices")

        message = response.choices[0].message
        tool_calls = [
            ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "{}")
            for tc in (message.tool_calls or [])
            if tc.type == "function"
        ]
        logger.debug(f"Completion returned {len(tool_calls)} tool call(s)")
        return CompletionMessage(content=message.content, tool_calls=tool_calls)

    async def close(self):
        await self.client.close()
