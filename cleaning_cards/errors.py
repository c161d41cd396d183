from typing import Optional


class CleaningCardsError(Exception):
    """Base class for errors raised by cleaning_cards."""


# Image preparation

class ImageDecodeFailed(CleaningCardsError):
    pass


class HeicConversionFailed(CleaningCardsError):
    pass


# Model gateway

class ModelError(CleaningCardsError):
    retryable = True


class MissingApiKey(ModelError):
    retryable = False

    def __init__(self, message: str = "OPENROUTER_API_KEY is not set"):
        super().__init__(message)


class HttpError(ModelError):
    def __init__(self, status: Optional[int], body: str):
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"OpenRouter request failed: {body}")
        else:
            super().__init__(f"OpenRouter error {status}: {body}")


class MissingContent(ModelError):
    def __init__(self, message: str = "OpenRouter response missing content"):
        super().__init__(message)


class InvalidModelJson(CleaningCardsError):
    """Model output could not be parsed, even after the repair call."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__("invalid_json_from_model")


class InvalidRequest(CleaningCardsError):
    pass


# Upload transport (client side)

class UploadError(CleaningCardsError):
    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(message)


class NoCardsGenerated(CleaningCardsError):
    def __init__(self, message: str = "no cards were generated"):
        super().__init__(message)
