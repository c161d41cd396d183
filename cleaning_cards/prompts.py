"""Message builders for the room-photo analysis model.

The model is not schema-constrained: the expected JSON shape is described in
the system prompt only, so callers must parse its output leniently
(see json_recovery).
"""
from __future__ import annotations

import json
from typing import List, Optional

from .image_io import base64_to_data_url
from .models import CleaningCard

INITIAL_SYSTEM_PROMPT = "\n".join([
    "あなたは「片付けを考えさせないAIコーチ」です。",
    "",
    "これからユーザーの部屋の写真が1枚渡されます。",
    "",
    "あなたの役割は、写真を見て",
    "「今すぐ実行できる、短いアクション」を複数決め、",
    "それぞれの対象が一番分かりやすい場所を写真から切り出して示すことです。",
    "",
    "やることは2つだけです。",
    "1. 写真の中から、今すぐ手を付けるべき具体的な場所を複数選ぶ",
    "2. それぞれの場所に対する、1〜2分で終わる行動を1文で指示する",
    "",
    "制約条件（重要）：",
    "- 指示は1カードにつき必ず1つだけ",
    "- 行動は具体的（場所・物が分かる）",
    "- 命令口調にしない",
    "- 理由や説明は書かない",
    "- 箇条書きは禁止",
    "- 句点（。）は使わない",
    "- 丁寧すぎない、生活者向けの自然な日本語",
    "",
    "出力形式（JSONのみ）：",
    "{",
    '  "cards": [',
    '    { "instruction": "" }',
    "  ]",
    "}",
    "カードは可能な限り多く返すが、同じ対象の重複は避ける",
])

FOLLOWUP_SYSTEM_PROMPT = "\n".join([
    "あなたは「片付けを考えさせないAIコーチ」です。",
    "",
    "ユーザーが片付けを行いました。",
    "「片付け前」と「片付け後」の2枚の写真と、最初に出した指示リストが渡されます。",
    "",
    "あなたの役割：",
    "1. 完了したタスクを特定して褒める",
    "2. まだ残っているタスクを指摘",
    "3. 新たに気づいたタスクがあれば追加",
    "4. 励ましのフィードバックを一言",
    "",
    "制約条件（重要）：",
    "- 指示は1カードにつき必ず1つだけ",
    "- 行動は具体的（場所・物が分かる）",
    "- 命令口調にしない",
    "- 理由や説明は書かない",
    "- 句点（。）は使わない",
    "- 丁寧すぎない、生活者向けの自然な日本語",
    "- feedbackは短く（20文字以内）、ポジティブに",
    "",
    "出力形式（JSONのみ）：",
    "{",
    '  "completed": [{ "instruction": "完了したタスク" }],',
    '  "remaining": [{ "instruction": "まだ残っているタスク" }],',
    '  "newTasks": [{ "instruction": "新たに見つかったタスク" }],',
    '  "feedback": "励ましの一言"',
    "}",
])

REPAIR_SUFFIX = "\nReturn ONLY valid JSON."


def _locale_hint(locale: Optional[str]) -> str:
    return f"Locale: {locale}" if locale else "Locale: unspecified"


def _image_part(b64: str) -> dict:
    return {"type": "image_url", "image_url": {"url": base64_to_data_url(b64)}}


def build_initial_messages(base64_image: str, locale: Optional[str] = None) -> List[dict]:
    return [
        {"role": "system", "content": INITIAL_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {
                    "type": "text",
                    "text": f"Analyze this room photo and output the JSON schema only. {_locale_hint(locale)}.",
                },
                _image_part(base64_image),
            ],
        },
    ]


def format_task_list(cards: List[CleaningCard]) -> str:
    return "\n".join(f"{i}. {c.instruction}" for i, c in enumerate(cards, start=1))


def build_followup_messages(
    previous_image: str,
    current_image: str,
    previous_cards: List[CleaningCard],
    locale: Optional[str] = None,
) -> List[dict]:
    """Before image first, after image second; the text labels them in that order."""
    text = (
        f"Compare these two photos and evaluate the cleaning progress. {_locale_hint(locale)}\n"
        "\n"
        "Previous tasks given:\n"
        f"{format_task_list(previous_cards)}\n"
        "\n"
        "First image: BEFORE cleaning\n"
        "Second image: AFTER cleaning\n"
        "\n"
        "Output JSON only."
    )
    return [
        {"role": "system", "content": FOLLOWUP_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": text},
                _image_part(previous_image),
                _image_part(current_image),
            ],
        },
    ]


def build_repair_messages(raw_text: str, mode: str = "initial", locale: Optional[str] = None) -> List[dict]:
    system_prompt = FOLLOWUP_SYSTEM_PROMPT if mode == "followup" else INITIAL_SYSTEM_PROMPT
    return [
        {"role": "system", "content": system_prompt + REPAIR_SUFFIX},
        {
            "role": "user",
            "content": f"Fix the following text into the JSON schema only. {_locale_hint(locale)}\n\n{raw_text}",
        },
    ]


def sanitize_messages(messages: List[dict]) -> List[dict]:
    """Copy of messages safe for logs: image URLs are replaced by their length."""
    out = []
    for m in messages:
        content = m.get("content")
        if isinstance(content, list):
            parts = []
            for c in content:
                t = c.get("type")
                if t == "image_url":
                    url = c.get("image_url", {}).get("url", "")
                    parts.append({"type": "image_url", "len": len(url)})
                else:
                    txt = c.get("text") or ""
                    parts.append({"type": t, "text_snip": txt[:200]})
            out.append({"role": m.get("role"), "content": parts})
        else:
            out.append({"role": m.get("role"), "content": (content or "")[:200]})
    return out


def describe_messages(messages: List[dict]) -> str:
    return json.dumps(sanitize_messages(messages), ensure_ascii=False)
