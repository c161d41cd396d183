"""OpenRouter chat-completions provider over plain HTTP."""
from __future__ import annotations

import time
from typing import Any, List, Optional

import requests

from ..errors import HttpError, MissingApiKey, MissingContent
from ..models import ModelCallAttempt
from ..prompts import describe_messages
from ..utils import debug_log, log, preview


class OpenRouterProvider:
    """One POST per `complete` call; the session can be injected for tests."""

    def __init__(self, cfg: Any, session: Optional[Any] = None, quiet: bool = False):
        self.cfg = cfg
        self.model = cfg.model
        self._session = session
        self.quiet = quiet

    def _get_session(self):
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.cfg.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.cfg.referrer,
            "X-Title": self.cfg.title,
        }

    def complete(
        self,
        messages: List[dict],
        temperature: float,
        max_tokens: int,
        request_id: Optional[str] = None,
        attempt: int = 1,
    ) -> str:
        if not self.cfg.api_key:
            log("API key not set", self.quiet, request_id)
            raise MissingApiKey()

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        debug_log("PROMPT_DEBUG", f"messages payload: {describe_messages(messages)}", self.cfg.debug)

        start = time.monotonic()
        status = None
        try:
            resp = self._get_session().post(
                self.cfg.api_url,
                headers=self._headers(),
                json=payload,
                timeout=self.cfg.timeout,
            )
            status = resp.status_code
            if not resp.ok:
                raise HttpError(status, resp.text)
            try:
                data = resp.json()
            except ValueError as e:
                raise MissingContent(f"OpenRouter response is not JSON: {e}") from e
            content = _first_choice_content(data)
            if not isinstance(content, str) or not content:
                raise MissingContent()
        except requests.RequestException as e:
            err = HttpError(None, str(e))
            self._log_attempt(start, attempt, status, 0, err, request_id)
            raise err from e
        except (HttpError, MissingContent) as e:
            self._log_attempt(start, attempt, status, 0, e, request_id)
            raise

        self._log_attempt(start, attempt, status, len(content), None, request_id)
        log(f"Response preview: {preview(content)}", self.quiet, request_id)
        return content

    def _log_attempt(self, start: float, attempt: int, status, content_length: int, error, request_id) -> None:
        record = ModelCallAttempt(
            model=self.model,
            attempt=attempt,
            elapsed_ms=int((time.monotonic() - start) * 1000),
            status=status,
            content_length=content_length,
            error=error,
        )
        log(f"Model call: {record.log_line()}", self.quiet, request_id)


def _first_choice_content(data: Any) -> Any:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    return message.get("content")
