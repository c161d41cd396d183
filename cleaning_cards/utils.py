import sys
import uuid
from typing import Optional


def log(msg: str, quiet: bool = False, request_id: Optional[str] = None) -> None:
    """Prefixed log line on stderr."""
    if quiet:
        return
    if request_id:
        print(f"[cleaning_cards] [{request_id}] {msg}", file=sys.stderr)
    else:
        print(f"[cleaning_cards] {msg}", file=sys.stderr)


def debug_log(tag: str, msg: str, enabled: bool) -> None:
    if enabled:
        print(f"[{tag}] {msg}", file=sys.stderr)


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def preview(text: str, limit: int = 300) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
