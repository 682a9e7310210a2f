import json
import logging
import math
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import CompletionError, SchemaDiscoveryError
from app.schemas.extraction import DiscoveryResult, ExtractedDocument
from app.services.llm_service import LLMService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "\n".join([
    "You are a document intelligence engine.",
    "Given raw document text, return ONE JSON object with EXACT keys:",
    "{ schema, extracted, confidence }.",
    "",
    "schema: a JSON Schema (draft-07-ish) for the extracted object.",
    "extracted: the populated fields.",
    "confidence: per-field confidence numbers in [0,1].",
    "",
    "The extracted object MUST follow this structure (use null if unknown):",
    "{",
    '  "doc_type": "resume" | "cover_letter" | "invoice" | "unknown",',
    '  "person": { "name": string|null, "email": string|null, "phone": string|null, "links": string[] },',
    '  "summary": string|null,',
    '  "skills": string[],',
    '  "experience": [{ "company": string|null, "title": string|null, "start_date": string|null, "end_date": string|null, "bullets": string[] }],',
    '  "education": [{ "school": string|null, "degree": string|null, "field": string|null, "start_date": string|null, "end_date": string|null }],',
    '  "raw_highlights": string[]',
    "}",
    "",
    "Rules:",
    "- Output valid JSON only (no markdown).",
    "- Use arrays even if empty.",
    "- Dates should be strings like '2024-05' or '2024' when possible, else null.",
    "- confidence should include keys matching extracted fields paths where possible.",
])


def flatten_confidence(raw: Any, prefix: str = "") -> Dict[str, float]:
    """
    Flattens nested confidence output into dotted field paths.
    List items are addressed by index (``experience.0.company``).
    Non-numeric leaves are dropped; numbers are clamped to [0, 1].
    """
    flat: Dict[str, float] = {}
    if isinstance(raw, dict):
        children = ((str(key), value) for key, value in raw.items())
    elif isinstance(raw, list) and prefix:
        children = ((str(index), value) for index, value in enumerate(raw))
    else:
        return flat
    for key, value in children:
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, (dict, list)):
            flat.update(flatten_confidence(value, path))
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            if math.isnan(value):
                continue
            flat[path] = min(1.0, max(0.0, float(value)))
    return flat


class SchemaDiscoveryService:
    """
    Infers a schema for unstructured text and extracts structured fields
    with per-field confidence in one strict-JSON completion.
    """

    def __init__(self, llm: LLMService, max_chars: Optional[int] = None):
        self.llm = llm
        self.max_chars = max_chars or settings.SCHEMA_DISCOVERY_MAX_CHARS

    async def discover(self, text: str) -> DiscoveryResult:
        # Keep the request within the model's input budget
        payload = text[: self.max_chars] if len(text) > self.max_chars else text

        try:
            content = await self.llm.complete_json(SYSTEM_PROMPT, payload or "(empty)")
        except CompletionError as e:
            raise SchemaDiscoveryError(e.message, stage="SCHEMA_DISCOVERY") from e

        if not content or not content.strip():
            raise SchemaDiscoveryError("LLM returned empty response", stage="SCHEMA_DISCOVERY")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise SchemaDiscoveryError(f"LLM returned invalid JSON: {e}", stage="SCHEMA_DISCOVERY") from e

        if not isinstance(parsed, dict):
            raise SchemaDiscoveryError("LLM response is not a JSON object", stage="SCHEMA_DISCOVERY")

        discovered_schema = parsed.get("schema")
        raw_extracted = parsed.get("extracted")

        try:
            extracted = ExtractedDocument.model_validate(
                raw_extracted if isinstance(raw_extracted, dict) else {}
            )
        except PydanticValidationError as e:
            raise SchemaDiscoveryError(
                f"Extracted object does not match the target shape: {e}", stage="SCHEMA_DISCOVERY"
            ) from e

        result = DiscoveryResult(
            discovered_schema=discovered_schema if isinstance(discovered_schema, dict) else {},
            extracted=extracted.model_dump(),
            confidence=flatten_confidence(parsed.get("confidence")),
        )
        logger.info(
            f"Schema discovery classified document as {extracted.doc_type} "
            f"with {len(result.confidence)} confidence entries"
        )
        return result
