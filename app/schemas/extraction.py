from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, validator

DOC_TYPES = ("resume", "cover_letter", "invoice", "unknown")


def as_list(v: Any) -> list:
    """Unknown list fields become empty lists; a lone value becomes a one-item list."""
    if v is None:
        return []
    if isinstance(v, list):
        return v
    return [v]


def as_text(v: Any) -> Optional[str]:
    """
    Loosely typed model output to a string: numbers are stringified and
    objects or arrays are reduced to their scalar values joined by ", ".
    """
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, (bool, int, float)):
        return str(v)
    if isinstance(v, dict):
        v = list(v.values())
    if isinstance(v, list):
        parts = [as_text(item) for item in v]
        joined = ", ".join(p for p in parts if p)
        return joined or None
    return str(v)


def as_text_list(v: Any) -> List[str]:
    items = (as_text(item) for item in as_list(v))
    return [item for item in items if item is not None]


def as_entry_list(v: Any) -> list:
    # Entries that are not objects carry no field names to map
    return [item for item in as_list(v) if isinstance(item, dict)]


class PersonInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    links: List[str] = Field(default_factory=list)

    @validator("name", "email", "phone", pre=True)
    def validate_text(cls, v):
        return as_text(v)

    @validator("links", pre=True)
    def validate_links(cls, v):
        return as_text_list(v)


class ExperienceEntry(BaseModel):
    company: Optional[str] = None
    title: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    bullets: List[str] = Field(default_factory=list)

    @validator("company", "title", "start_date", "end_date", pre=True)
    def validate_text(cls, v):
        return as_text(v)

    @validator("bullets", pre=True)
    def validate_bullets(cls, v):
        return as_text_list(v)


class EducationEntry(BaseModel):
    school: Optional[str] = None
    degree: Optional[str] = None
    field: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @validator("school", "degree", "field", "start_date", "end_date", pre=True)
    def validate_text(cls, v):
        return as_text(v)


class ExtractedDocument(BaseModel):
    """
    Fixed target shape for structured extraction.

    Unknown scalars are explicit nulls and unknown lists are empty; keys are
    never omitted once a payload has passed through this model. Values of the
    wrong JSON type are coerced to text rather than rejected.
    """
    doc_type: str = "unknown"
    person: PersonInfo = Field(default_factory=PersonInfo)
    summary: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    raw_highlights: List[str] = Field(default_factory=list)

    @validator("doc_type", pre=True)
    def validate_doc_type(cls, v):
        if isinstance(v, str) and v.strip().lower() in DOC_TYPES:
            return v.strip().lower()
        return "unknown"

    @validator("person", pre=True)
    def validate_person(cls, v):
        return v if isinstance(v, dict) else {}

    @validator("summary", pre=True)
    def validate_summary(cls, v):
        return as_text(v)

    @validator("skills", "raw_highlights", pre=True)
    def validate_text_lists(cls, v):
        return as_text_list(v)

    @validator("experience", "education", pre=True)
    def validate_entries(cls, v):
        return as_entry_list(v)


class DiscoveryResult(BaseModel):
    """Output of schema discovery: the schema, populated values and per-field confidence."""
    discovered_schema: Dict[str, Any] = Field(default_factory=dict)
    extracted: Dict[str, Any] = Field(default_factory=dict)
    confidence: Dict[str, float] = Field(default_factory=dict)
