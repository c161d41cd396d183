"""Tolerant JSON parsing and normalization of model output.

The model often wraps its JSON in prose or markdown fences. Parsing goes:
strict parse, then the substring from the first "{" to the last "}".
Normalization maps only the documented fields and never raises.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Optional

from .models import CleaningCard, FollowupAnalysisResult, InitialAnalysisResult


@dataclass
class ParsedJson:
    ok: bool
    value: Optional[dict] = None
    error: Optional[Exception] = None


def parse_json_safe(text: str) -> ParsedJson:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        return ParsedJson(ok=False, error=e)
    if not isinstance(value, dict):
        return ParsedJson(ok=False, error=ValueError(f"expected a JSON object, got {type(value).__name__}"))
    return ParsedJson(ok=True, value=value)


def extract_json_object(text: str) -> Optional[str]:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last <= first:
        return None
    return text[first:last + 1]


def parse_json_with_recovery(text: str) -> ParsedJson:
    direct = parse_json_safe(text)
    if direct.ok:
        return direct
    extracted = extract_json_object(text or "")
    if extracted is None:
        return direct
    return parse_json_safe(extracted)


def normalize_cards(value: Any) -> List[CleaningCard]:
    if not isinstance(value, list):
        return []
    cards = []
    for item in value:
        if not isinstance(item, dict):
            continue
        instruction = item.get("instruction")
        if isinstance(instruction, str) and instruction.strip():
            cards.append(CleaningCard(instruction=instruction.strip()))
    return cards


def normalize_initial(obj: Optional[dict]) -> InitialAnalysisResult:
    obj = obj if isinstance(obj, dict) else {}
    return InitialAnalysisResult(cards=normalize_cards(obj.get("cards")))


def normalize_followup(obj: Optional[dict]) -> FollowupAnalysisResult:
    obj = obj if isinstance(obj, dict) else {}
    feedback = obj.get("feedback")
    return FollowupAnalysisResult(
        completed=normalize_cards(obj.get("completed")),
        remaining=normalize_cards(obj.get("remaining")),
        new_tasks=normalize_cards(obj.get("newTasks")),
        feedback=feedback.strip() if isinstance(feedback, str) else "",
    )
