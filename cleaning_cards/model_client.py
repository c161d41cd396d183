import time
from typing import Callable, List, Optional

from .errors import ModelError
from .providers.base import ModelProvider
from .utils import log

BACKOFF_MS = 800


def backoff_seconds(attempt: int, base_ms: int = BACKOFF_MS) -> float:
    """Delay after the zero-based `attempt` failed: 0.8s, 1.6s, 3.2s..."""
    return base_ms * (2 ** attempt) / 1000.0


def call_model_with_retry(
    provider: ModelProvider,
    messages: List[dict],
    temperature: float,
    max_tokens: int,
    max_retries: int = 2,
    sleep: Callable[[float], None] = time.sleep,
    request_id: Optional[str] = None,
    quiet: bool = False,
) -> str:
    """Call the provider, retrying retryable ModelErrors with exponential backoff.

    Makes at most max_retries + 1 attempts. Non-retryable errors (missing API
    key) propagate immediately; after the final attempt the last error
    propagates unchanged.
    """
    attempt = 0
    while True:
        log(f"Attempt {attempt + 1}/{max_retries + 1}", quiet, request_id)
        try:
            return provider.complete(
                messages,
                temperature=temperature,
                max_tokens=max_tokens,
                request_id=request_id,
                attempt=attempt + 1,
            )
        except ModelError as e:
            if not e.retryable or attempt >= max_retries:
                raise
            delay = backoff_seconds(attempt)
            log(f"Attempt {attempt + 1} failed: {e}; retrying in {int(delay * 1000)}ms", quiet, request_id)
            sleep(delay)
            attempt += 1
