from typing import Protocol, List, Optional


class ModelProvider(Protocol):
    """Protocol describing a chat-completion model provider.

    `complete` performs exactly one outbound call and returns the text of the
    first choice; retrying is the caller's job (see model_client).
    """

    model: str

    def complete(
        self,
        messages: List[dict],
        temperature: float,
        max_tokens: int,
        request_id: Optional[str] = None,
        attempt: int = 1,
    ) -> str:
        ...
