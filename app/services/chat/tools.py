import json
import logging
from typing import Any, Dict, List, Optional

from app.models import Document
from app.schemas.chat import ToolCall

logger = logging.getLogger(__name__)

GET_EXTRACTED_DATA = "get_extracted_data"
SEARCH_DOCUMENT_TEXT = "search_document_text"

MAX_SEARCH_LINES = 5
NO_MATCH = "No matching text found."

TOOLS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": GET_EXTRACTED_DATA,
            "description": (
                "Get the structured data extracted from the document. Use this when the user "
                "asks about specific fields, entities, or structured information."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "field": {
                        "type": "string",
                        "description": (
                            "The specific field or path to retrieve (e.g., 'person.name', "
                            "'experience', 'skills'). Leave empty to get all extracted data."
                        ),
                    },
                },
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": SEARCH_DOCUMENT_TEXT,
            "description": (
                "Search for specific information in the document text. Use this when you need "
                "to find specific details, quotes, or information that might not be in the "
                "extracted data."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The search query or keywords to look for in the document text.",
                    },
                },
            },
        },
    },
]


def get_extracted_data(extracted: Optional[Dict[str, Any]], field: Optional[str] = None) -> Any:
    """
    Resolves a dotted path ("person.name", "experience.0.company") against the
    extracted object. No path returns the whole object; an unresolved path
    returns None.
    """
    if not field:
        return extracted

    current: Any = extracted
    for key in field.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return None
    return current


def search_document_text(text: str, query: Optional[str]) -> str:
    needle = (query or "").lower()
    matches = [line for line in text.split("\n") if needle in line.lower()]
    return "\n".join(matches[:MAX_SEARCH_LINES]) or NO_MATCH


def _parse_arguments(raw: str) -> Dict[str, Any]:
    try:
        args = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed tool arguments: {raw!r}")
        return {}
    return args if isinstance(args, dict) else {}


def execute_tool_call(document: Document, tool_call: ToolCall) -> Dict[str, Any]:
    """
    Runs one tool call locally against the stored document and returns the
    tool-result message to append to the conversation.
    """
    args = _parse_arguments(tool_call.arguments)

    if tool_call.name == GET_EXTRACTED_DATA:
        field = args.get("field")
        content = json.dumps(get_extracted_data(document.extracted, field if isinstance(field, str) else None))
    elif tool_call.name == SEARCH_DOCUMENT_TEXT:
        query = args.get("query")
        content = search_document_text(document.text, query if isinstance(query, str) else None)
    else:
        logger.warning(f"Model requested unknown tool {tool_call.name!r}")
        content = json.dumps({"error": f"Unknown tool: {tool_call.name}"})

    return {
        "role": "tool",
        "tool_call_id": tool_call.id,
        "name": tool_call.name,
        "content": content,
    }
