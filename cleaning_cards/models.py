"""Request and result types shared by the client and the analysis server.

Nothing here is persisted: every object lives for a single request.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .errors import InvalidRequest

MODES = ("initial", "followup")


@dataclass
class RoomPhoto:
    jpeg: bytes
    width: int = 0
    height: int = 0
    orientation: str = ""
    locale: Optional[str] = None

    def to_base64(self) -> str:
        return base64.b64encode(self.jpeg).decode("ascii")


@dataclass
class CleaningCard:
    instruction: str

    def to_dict(self) -> dict:
        return {"instruction": self.instruction}


def cards_to_dicts(cards: List[CleaningCard]) -> List[dict]:
    return [c.to_dict() for c in cards]


@dataclass
class AnalysisRequest:
    image: RoomPhoto
    locale: Optional[str] = None
    mode: str = "initial"
    previous_image: Optional[RoomPhoto] = None
    previous_cards: Optional[List[CleaningCard]] = None

    def validate(self) -> None:
        if self.mode not in MODES:
            raise InvalidRequest("invalid mode")
        if self.mode == "followup" and (self.previous_image is None or self.previous_cards is None):
            raise InvalidRequest("followup mode requires previousImage and previousCards")


@dataclass
class InitialAnalysisResult:
    cards: List[CleaningCard] = field(default_factory=list)

    def to_dict(self, include_mode: bool = True) -> dict:
        out: dict = {}
        if include_mode:
            out["mode"] = "initial"
        out["cards"] = cards_to_dicts(self.cards)
        return out

    @property
    def instructions(self) -> List[str]:
        return [c.instruction for c in self.cards]


@dataclass
class FollowupAnalysisResult:
    completed: List[CleaningCard] = field(default_factory=list)
    remaining: List[CleaningCard] = field(default_factory=list)
    new_tasks: List[CleaningCard] = field(default_factory=list)
    feedback: str = ""

    def to_dict(self) -> dict:
        return {
            "mode": "followup",
            "completed": cards_to_dicts(self.completed),
            "remaining": cards_to_dicts(self.remaining),
            "newTasks": cards_to_dicts(self.new_tasks),
            "feedback": self.feedback,
        }


@dataclass
class ModelCallAttempt:
    """One outbound model call, kept only for retry decisions and logging."""

    model: str
    attempt: int
    elapsed_ms: int
    status: Optional[int] = None
    content_length: int = 0
    error: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def log_line(self) -> str:
        outcome = "ok" if self.ok else f"error={self.error}"
        return (
            f"model={self.model}, attempt={self.attempt}, elapsed_ms={self.elapsed_ms}, "
            f"status={self.status}, content_len={self.content_length}, {outcome}"
        )
