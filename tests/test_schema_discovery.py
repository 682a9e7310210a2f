import json
import pytest
from app.core.exceptions import CompletionError, SchemaDiscoveryError
from app.services.schema_discovery import SchemaDiscoveryService, flatten_confidence
from tests.conftest import FakeLLMService, SAMPLE_EXTRACTION

@pytest.mark.asyncio
async def test_discovery_returns_schema_extracted_and_confidence():
    service = SchemaDiscoveryService(FakeLLMService())
    result = await service.discover("John Doe resume text")

    assert result.discovered_schema == SAMPLE_EXTRACTION["schema"]
    assert result.extracted["doc_type"] == "resume"
    assert result.extracted["person"]["name"] == "John Doe"
    assert result.confidence == {"doc_type": 0.9, "person.name": 0.95}

@pytest.mark.asyncio
async def test_missing_fields_become_nulls_and_empty_lists():
    llm = FakeLLMService(json_content=json.dumps({
        "schema": {},
        "extracted": {"doc_type": "invoice", "person": {"name": "Acme"}, "experience": [{"company": "X"}]},
        "confidence": {},
    }))
    result = await SchemaDiscoveryService(llm).discover("Invoice #1")
    extracted = result.extracted

    assert extracted["summary"] is None
    assert extracted["skills"] == []
    assert extracted["education"] == []
    assert extracted["raw_highlights"] == []
    assert extracted["person"] == {"name": "Acme", "email": None, "phone": None, "links": []}
    assert extracted["experience"][0] == {
        "company": "X", "title": None, "start_date": None, "end_date": None, "bullets": []
    }

@pytest.mark.asyncio
async def test_null_lists_and_unknown_doc_type_are_normalised():
    llm = FakeLLMService(json_content=json.dumps({
        "extracted": {"doc_type": "contract", "skills": None, "person": None},
    }))
    result = await SchemaDiscoveryService(llm).discover("Some contract")

    assert result.extracted["doc_type"] == "unknown"
    assert result.extracted["skills"] == []
    assert result.extracted["person"]["links"] == []
    assert result.discovered_schema == {}
    assert result.confidence == {}

@pytest.mark.asyncio
async def test_input_is_truncated_to_budget():
    llm = FakeLLMService()
    service = SchemaDiscoveryService(llm, max_chars=100)
    await service.discover("x" * 500)
    assert len(llm.json_calls[0]["user"]) == 100

@pytest.mark.asyncio
async def test_empty_text_is_sent_as_placeholder():
    llm = FakeLLMService()
    await SchemaDiscoveryService(llm).discover("")
    assert llm.json_calls[0]["user"] == "(empty)"

@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", "   ", "not json at all", "[1, 2, 3]"])
async def test_unusable_responses_raise(content):
    service = SchemaDiscoveryService(FakeLLMService(json_content=content))
    with pytest.raises(SchemaDiscoveryError):
        await service.discover("text")

@pytest.mark.asyncio
async def test_completion_failure_becomes_schema_discovery_error():
    llm = FakeLLMService(json_content=CompletionError("Completion timed out"))
    with pytest.raises(SchemaDiscoveryError) as excinfo:
        await SchemaDiscoveryService(llm).discover("text")
    assert "timed out" in str(excinfo.value)

def test_confidence_is_flattened_and_clamped():
    raw = {
        "doc_type": 1.4,
        "person": {"name": 0.8, "email": -0.2, "links": "high"},
        "skills": True,
        "summary": 0.5,
    }
    assert flatten_confidence(raw) == {
        "doc_type": 1.0,
        "person.name": 0.8,
        "person.email": 0.0,
        "summary": 0.5,
    }

def test_list_confidence_is_flattened_by_index():
    raw = {"experience": [{"company": 0.9, "title": "n/a"}], "skills": [0.8, 1.2]}
    assert flatten_confidence(raw) == {
        "experience.0.company": 0.9,
        "skills.0": 0.8,
        "skills.1": 1.0,
    }

def test_top_level_confidence_must_be_an_object():
    assert flatten_confidence([0.5, 0.7]) == {}

@pytest.mark.asyncio
async def test_numeric_dates_are_coerced_to_strings():
    llm = FakeLLMService(json_content=json.dumps({
        "extracted": {
            "experience": [{"company": "Acme", "start_date": 2020, "end_date": 2023.5}],
            "education": [{"school": "MIT", "end_date": 2019}],
            "person": {"phone": 5551234},
        },
    }))
    result = await SchemaDiscoveryService(llm).discover("Acme since 2020")

    assert result.extracted["experience"][0]["start_date"] == "2020"
    assert result.extracted["experience"][0]["end_date"] == "2023.5"
    assert result.extracted["education"][0]["end_date"] == "2019"
    assert result.extracted["person"]["phone"] == "5551234"

@pytest.mark.asyncio
async def test_object_valued_list_items_are_reduced_to_text():
    llm = FakeLLMService(json_content=json.dumps({
        "extracted": {
            "skills": [{"name": "Python"}, {"name": "SQL", "level": "expert"}, None, 3],
            "experience": ["Acme 2020-2023", {"company": "Globex", "bullets": [{"text": "Led team"}]}],
            "summary": {"text": "Engineer"},
        },
    }))
    result = await SchemaDiscoveryService(llm).discover("Skills: Python, SQL")

    assert result.extracted["skills"] == ["Python", "SQL, expert", "3"]
    assert [e["company"] for e in result.extracted["experience"]] == ["Globex"]
    assert result.extracted["experience"][0]["bullets"] == ["Led team"]
    assert result.extracted["summary"] == "Engineer"
