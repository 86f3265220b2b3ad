"""AI gateway package."""

from finai.services.ai.gateway import (
    AIGateway,
    AIGatewayError,
    CompletionClient,
    EmptyCompletionError,
    RetryPolicy,
    build_user_content,
)
from finai.services.ai.gemini_client import GeminiCompletionClient

__all__ = [
    "AIGateway",
    "AIGatewayError",
    "CompletionClient",
    "EmptyCompletionError",
    "RetryPolicy",
    "build_user_content",
    "GeminiCompletionClient",
]
