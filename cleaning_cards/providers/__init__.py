"""Model providers (currently OpenRouter's chat-completions API)."""
from .base import ModelProvider
from .openrouter_provider import OpenRouterProvider

__all__ = ["ModelProvider", "OpenRouterProvider"]
