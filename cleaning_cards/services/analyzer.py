"""AnalyzerService: builds prompts, calls the model and normalizes its answer."""
import time
from typing import Any, Callable, List, Optional

from ..errors import InvalidModelJson
from ..json_recovery import ParsedJson, normalize_followup, normalize_initial, parse_json_with_recovery
from ..model_client import call_model_with_retry
from ..models import AnalysisRequest, CleaningCard, FollowupAnalysisResult, InitialAnalysisResult
from ..prompts import build_followup_messages, build_initial_messages, build_repair_messages
from ..providers.base import ModelProvider
from ..utils import log

GENERATION_TEMPERATURE = 0.2
REPAIR_TEMPERATURE = 0


class AnalyzerService:
    def __init__(self, provider: ModelProvider, cfg: Any, sleep: Callable[[float], None] = time.sleep, quiet: bool = False):
        self.provider = provider
        self.cfg = cfg
        self.sleep = sleep
        self.quiet = quiet

    def _call(self, messages: List[dict], temperature: float, request_id: Optional[str]) -> str:
        return call_model_with_retry(
            self.provider,
            messages,
            temperature=temperature,
            max_tokens=self.cfg.max_tokens,
            max_retries=self.cfg.max_retries,
            sleep=self.sleep,
            request_id=request_id,
            quiet=self.quiet,
        )

    def _parse_or_repair(self, raw: str, mode: str, locale: Optional[str], request_id: Optional[str]) -> dict:
        parsed: ParsedJson = parse_json_with_recovery(raw)
        if parsed.ok:
            return parsed.value

        log(f"Failed to parse model output ({parsed.error}); requesting repair", self.quiet, request_id)
        fixed = self._call(build_repair_messages(raw, mode=mode, locale=locale), REPAIR_TEMPERATURE, request_id)
        parsed = parse_json_with_recovery(fixed)
        if parsed.ok:
            return parsed.value

        log("Repair output is still not valid JSON", self.quiet, request_id)
        raise InvalidModelJson(raw)

    def analyze(self, req: AnalysisRequest, request_id: Optional[str] = None):
        req.validate()
        if req.mode == "followup":
            return self.analyze_followup(
                req.previous_image.to_base64(),
                req.image.to_base64(),
                req.previous_cards,
                locale=req.locale,
                request_id=request_id,
            )
        return self.analyze_initial(req.image.to_base64(), locale=req.locale, request_id=request_id)

    def analyze_initial(self, image_b64: str, locale: Optional[str] = None, request_id: Optional[str] = None) -> InitialAnalysisResult:
        log("Processing initial analysis", self.quiet, request_id)
        raw = self._call(build_initial_messages(image_b64, locale), GENERATION_TEMPERATURE, request_id)
        result = normalize_initial(self._parse_or_repair(raw, "initial", locale, request_id))
        log(f"Success, cards: {len(result.cards)}", self.quiet, request_id)
        return result

    def analyze_followup(
        self,
        previous_image_b64: str,
        current_image_b64: str,
        previous_cards: List[CleaningCard],
        locale: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> FollowupAnalysisResult:
        log(f"Processing followup analysis, previous cards: {len(previous_cards)}", self.quiet, request_id)
        messages = build_followup_messages(previous_image_b64, current_image_b64, previous_cards, locale)
        raw = self._call(messages, GENERATION_TEMPERATURE, request_id)
        result = normalize_followup(self._parse_or_repair(raw, "followup", locale, request_id))
        log(
            f"Success, completed: {len(result.completed)}, remaining: {len(result.remaining)}, "
            f"new tasks: {len(result.new_tasks)}",
            self.quiet,
            request_id,
        )
        return result
