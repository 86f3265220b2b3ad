"""
AI Gateway

The one place the application talks to the hosted language model.

DESIGN DECISION: The gateway owns the retry policy; the completion client
owns the wire protocol. Swapping Gemini for another provider means writing
a new CompletionClient, nothing else.

Contract per call:
- Every attempt is bounded by a timeout (30s by default)
- Up to 3 attempts, exponential backoff between them (1s, 2s, 4s schedule)
- Any failure is retried: network errors, provider errors, empty replies
- Each attempt is all-or-nothing; a partial reply is never used
- Exhaustion raises AIGatewayError carrying the last underlying error
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from finai.config import AISettings, get_settings
from finai.models.ai import ImageAttachment


logger = structlog.get_logger(__name__)

UserContent = Union[str, list[dict[str, Any]]]

SIMPLE_SYSTEM_PROMPT = "You are a helpful financial assistant."
IMAGE_DEFAULT_TEXT = "Please record the transaction shown in this image."


class AIGatewayError(Exception):
    """All attempts failed. The last underlying error is kept for logging."""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class EmptyCompletionError(Exception):
    """The provider answered, but without any usable text."""
    pass


class CompletionClient(Protocol):
    """
    Black-box text completion endpoint.

    Implementations raise on any provider or transport failure and return
    the completion text otherwise.
    """

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_content: UserContent,
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        ...


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt cap, backoff schedule and per-attempt timeout."""

    max_attempts: int = 3
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 4.0
    timeout_seconds: float = 30.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)

    @classmethod
    def from_settings(cls, settings: AISettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            backoff_base_seconds=settings.backoff_base_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
            timeout_seconds=settings.timeout_seconds,
        )

    def backoff_schedule(self) -> list[float]:
        """
        Delay that follows a failure of attempt 1, 2, ... max_attempts.

        The last entry is never slept: no attempt follows it.
        """
        return [
            min(self.backoff_base_seconds * 2 ** i, self.backoff_max_seconds)
            for i in range(self.max_attempts)
        ]

    def wait_strategy(self) -> wait_exponential:
        return wait_exponential(
            multiplier=self.backoff_base_seconds,
            max=self.backoff_max_seconds,
        )

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, self.retry_on)


def build_user_content(text: str, image: Optional[ImageAttachment] = None) -> UserContent:
    """
    Plain text, or a text block plus a base64 image block when an image is
    attached.
    """
    if image is None:
        return text
    return [
        {"type": "text", "text": text or IMAGE_DEFAULT_TEXT},
        {"type": "image", "mime_type": image.mime_type, "data": image.to_base64()},
    ]


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "ai_call_retry",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error) or type(error).__name__,
    )


class AIGateway:
    """
    Retrying wrapper around a CompletionClient.

    Usage:
        gateway = AIGateway(GeminiCompletionClient(settings.ai), settings.ai)
        text = await gateway.complete(system_prompt, "beli kopi 25rb", extraction=True)
    """

    def __init__(
        self,
        client: CompletionClient,
        settings: Optional[AISettings] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            client: Provider implementation
            settings: Models, temperatures and token limit
            policy: Retry policy, derived from settings when omitted
            sleep: Backoff sleep, replaceable in tests
        """
        self._client = client
        self._settings = settings or get_settings().ai
        self._policy = policy or RetryPolicy.from_settings(self._settings)
        self._sleep = sleep

    @property
    def settings(self) -> AISettings:
        return self._settings

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def _attempt(
        self,
        model: str,
        system_prompt: str,
        user_content: UserContent,
        temperature: float,
    ) -> str:
        text = await asyncio.wait_for(
            self._client.complete(
                model=model,
                system_prompt=system_prompt,
                user_content=user_content,
                temperature=temperature,
                max_tokens=self._settings.max_tokens,
                timeout=self._policy.timeout_seconds,
            ),
            timeout=self._policy.timeout_seconds,
        )
        if not text or not text.strip():
            raise EmptyCompletionError(f"Model {model} returned no completion")
        return text

    async def complete(
        self,
        system_prompt: str,
        text: str,
        image: Optional[ImageAttachment] = None,
        *,
        extraction: bool = False,
        model: Optional[str] = None,
    ) -> str:
        """
        Send one prompt and return the completion text.

        Args:
            system_prompt: Fully rendered system prompt
            text: User message
            image: Optional receipt image
            extraction: True for JSON extraction (near-zero temperature)
            model: Model override; defaults to the fast model

        Raises:
            AIGatewayError: When every attempt failed
        """
        model = model or self._settings.fast_model
        temperature = (
            self._settings.extraction_temperature if extraction
            else self._settings.conversational_temperature
        )
        user_content = build_user_content(text, image)

        attempts = 0
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._policy.max_attempts),
            wait=self._policy.wait_strategy(),
            retry=retry_if_exception(self._policy.is_retryable),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                attempts = attempt.retry_state.attempt_number
                with attempt:
                    return await self._attempt(model, system_prompt, user_content, temperature)
        except Exception as e:
            logger.error(
                "ai_call_failed",
                model=model,
                attempts=attempts,
                error=str(e) or type(e).__name__,
            )
            raise AIGatewayError(
                f"AI service unavailable after {attempts} attempts",
                attempts=attempts,
                last_error=e,
            ) from e

        # AsyncRetrying either returns from the loop or raises
        raise AIGatewayError("AI call did not run", attempts=attempts)

    async def ask(self, prompt: str, model: Optional[str] = None) -> str:
        """Conversational one-shot prompt with a generic system prompt."""
        return await self.complete(SIMPLE_SYSTEM_PROMPT, prompt, model=model)
