import json

import pytest

from core import ai_insights
from core.ai_insights import ai_mode, generate_recommendation_text, parse_recommendation_response
from core.settings import get_settings


def _payload():
    return {
        "school_type": "secondary",
        "model": "taps",
        "weak_categories": [
            {"category": "academics", "score": 90, "max": 200, "priority": "medium"},
            {"category": "leadership", "score": 6, "max": 30, "priority": "high"},
        ],
    }


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_deterministic_mode_returns_no_text(monkeypatch):
    monkeypatch.setenv("AI_ENABLED", "false")
    assert ai_mode() == "deterministic"
    assert generate_recommendation_text(_payload()) == {}


def test_ai_mode_enabled(monkeypatch):
    monkeypatch.setenv("AI_ENABLED", "true")
    monkeypatch.setenv("AI_PROVIDER", "openai")
    assert ai_mode() == "ai_openai"


def test_missing_key_raises(monkeypatch):
    monkeypatch.setenv("AI_ENABLED", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        generate_recommendation_text(_payload())


def test_generated_text_parsed(monkeypatch):
    monkeypatch.setenv("AI_ENABLED", "true")
    answer = {
        "recommendations": [
            {"category": "academics", "recommendation": "Run Saturday clinics.", "focus_areas": ["Clinics"]},
            {"category": "leadership", "recommendation": "Meet weekly.", "focus_areas": []},
        ]
    }
    monkeypatch.setattr(ai_insights, "_call_openai_recommendations", lambda payload: json.dumps(answer))

    result = generate_recommendation_text(_payload())

    assert result == {
        "academics": {"text": "Run Saturday clinics.", "focus_areas": ["Clinics"]},
        "leadership": {"text": "Meet weekly.", "focus_areas": []},
    }


def test_parse_strips_code_fence():
    text = '```json\n{"recommendations": [{"category": "academics", "recommendation": "Tutor.", "focus_areas": ["a", "b", "c", "d"]}]}\n```'
    result = parse_recommendation_response(text, ["academics"])
    assert result["academics"]["text"] == "Tutor."
    assert result["academics"]["focus_areas"] == ["a", "b", "c"]


def test_parse_drops_unknown_duplicate_and_empty():
    text = json.dumps({
        "recommendations": [
            {"category": "finance", "recommendation": "Not asked.", "focus_areas": []},
            {"category": "academics", "recommendation": "First.", "focus_areas": []},
            {"category": "academics", "recommendation": "Second.", "focus_areas": []},
            {"category": "leadership", "recommendation": "  ", "focus_areas": []},
            "garbage",
        ]
    })
    result = parse_recommendation_response(text, ["academics", "leadership"])
    assert result == {"academics": {"text": "First.", "focus_areas": []}}


def test_parse_rejects_wrong_shape():
    with pytest.raises(ValueError):
        parse_recommendation_response('{"items": []}', ["academics"])
    with pytest.raises(ValueError):
        parse_recommendation_response("not json at all", ["academics"])


def test_prompt_lists_weak_categories(monkeypatch):
    monkeypatch.setenv("SCHOOL_SYSTEM_NAME", "Sample Ministry")
    prompts = ai_insights._build_prompts(_payload())
    assert "Sample Ministry" in prompts["system"]
    assert "- leadership: 6/30 points (priority: high)" in prompts["user"]
    assert "School type: secondary" in prompts["user"]
