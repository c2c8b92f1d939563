"""
ai_insights.py — Recommendation prose from a language model.

Design:
- Never pick, rank or prioritise categories via AI; the planner does that.
- The model only receives the structured weak-category payload and returns
  prose per category.
- When AI is disabled or not configured, no prose is returned and the
  planner uses its deterministic templates.
- Failures raise; the planner catches them and falls back. No retries.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List

import httpx

from core.settings import get_settings

logger = logging.getLogger(__name__)

OPENAI_RESPONSES_URL = "https://api.openai.com/v1/responses"

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def ai_mode() -> str:
    """Which prose source is active: "ai_openai" or "deterministic"."""
    settings = get_settings()
    if settings.AI_ENABLED and settings.AI_PROVIDER == "openai":
        return "ai_openai"
    return "deterministic"


def _build_prompts(payload: Dict[str, Any]) -> Dict[str, str]:
    system_name = get_settings().SCHOOL_SYSTEM_NAME
    system_prompt = (
        f"You are an educational consultant for the {system_name}. "
        "Write practical improvement recommendations for a school's weakest assessment categories. "
        "Do not invent numbers; use only the provided scores. "
        "Steps must be achievable within one academic term. "
        "Return strict JSON with key: recommendations."
    )
    lines = [
        f"- {w['category']}: {w['score']}/{w['max']} points (priority: {w['priority']})"
        for w in payload.get("weak_categories", [])
    ]
    user_prompt = (
        f"School type: {payload.get('school_type') or 'unknown'}\n"
        f"Scoring model: {payload.get('model')}\n"
        "Categories requiring improvement:\n"
        + "\n".join(lines)
        + "\n\nConstraints:\n"
        "- one recommendation per listed category, using the category value exactly\n"
        "- recommendation: max 80 words\n"
        "- focus_areas: exactly 3 short phrases\n"
    )
    return {"system": system_prompt, "user": user_prompt}


def _call_openai_recommendations(payload: Dict[str, Any]) -> str:
    settings = get_settings()
    if not settings.has_openai_key:
        raise RuntimeError("OPENAI_API_KEY is not set.")

    prompts = _build_prompts(payload)
    body = {
        "model": settings.OPENAI_MODEL,
        "input": [
            {"role": "system", "content": [{"type": "text", "text": prompts["system"]}]},
            {"role": "user", "content": [{"type": "text", "text": prompts["user"]}]},
        ],
        "temperature": settings.AI_TEMPERATURE,
        "text": {
            "format": {
                "type": "json_schema",
                "name": "school_recommendations",
                "schema": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "recommendations": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "additionalProperties": False,
                                "properties": {
                                    "category": {"type": "string"},
                                    "recommendation": {"type": "string"},
                                    "focus_areas": {"type": "array", "items": {"type": "string"}},
                                },
                                "required": ["category", "recommendation", "focus_areas"],
                            },
                        },
                    },
                    "required": ["recommendations"],
                },
                "strict": True,
            }
        },
    }

    with httpx.Client(timeout=settings.AI_TIMEOUT_SECONDS) as client:
        res = client.post(
            OPENAI_RESPONSES_URL,
            headers={
                "Authorization": f"Bearer {settings.OPENAI_API_KEY}",
                "Content-Type": "application/json",
            },
            json=body,
        )
        res.raise_for_status()
        data = res.json()

    text = (data.get("output_text") or "").strip()
    if not text:
        raise RuntimeError("Empty AI response.")
    return text


def parse_recommendation_response(text: str, categories: List[str]) -> Dict[str, Dict[str, Any]]:
    """Pull per-category prose out of the model's JSON answer.

    Entries for categories that were not asked about, or with empty text, are
    dropped. Raises ValueError when the answer is not the expected JSON.
    """
    match = _CODE_FENCE.search(text)
    if match:
        text = match.group(1)
    parsed = json.loads(text.strip())
    if not isinstance(parsed, dict) or not isinstance(parsed.get("recommendations"), list):
        raise ValueError("AI response has no 'recommendations' list.")

    wanted = set(categories)
    out: Dict[str, Dict[str, Any]] = {}
    for rec in parsed["recommendations"]:
        if not isinstance(rec, dict):
            continue
        category = str(rec.get("category", "")).strip()
        prose = rec.get("recommendation")
        if category not in wanted or category in out:
            continue
        if not isinstance(prose, str) or not prose.strip():
            continue
        focus = rec.get("focus_areas") if isinstance(rec.get("focus_areas"), list) else []
        out[category] = {
            "text": prose.strip(),
            "focus_areas": [str(f) for f in focus][:3],
        }
    return out


def generate_recommendation_text(payload: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Default text-generation collaborator for the recommendation planner.

    ``payload`` is ``{school_type, model, weak_categories: [{category, score,
    max, priority}]}``. Returns ``{category: {"text", "focus_areas"}}``; an
    empty dict when AI is disabled.
    """
    if ai_mode() != "ai_openai":
        return {}
    categories = [w["category"] for w in payload.get("weak_categories", [])]
    text = _call_openai_recommendations(payload)
    prose = parse_recommendation_response(text, categories)
    logger.info("AI recommendation text received for %d of %d categories.", len(prose), len(categories))
    return prose
