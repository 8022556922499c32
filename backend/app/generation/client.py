"""Client for the AI text-generation service.

Transport failures (network errors, non-2xx status, malformed envelope) are
retried with a fixed delay, always with the same prompt. Once text comes
back it goes through extraction and validation exactly once: a response with
unusable structure is not a transient fault, so it is returned to the caller
as a tagged outcome instead of being retried.
"""

import asyncio
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any

import httpx

from app.core.config import get_settings
from app.core.errors import ExtractionError, TransportError
from app.core.logging import get_logger
from app.core.notifications import (
    Notification,
    NotificationKind,
    NotificationLevel,
    Notifier,
    log_notifier,
)
from app.generation.extractor import extract_json
from app.generation.validator import validate_roadmap
from app.schemas.generation import GenerationOutcome, GenerationStatus, RoadmapShape
from app.schemas.roadmap import RoadmapDraft

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def _envelope_text(data: Any) -> str:
    """Read candidates[0].content.parts[0].text from a response body."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise TransportError("Malformed response envelope", detail=repr(e)) from e
    if not isinstance(text, str):
        raise TransportError("Malformed response envelope", detail="text is not a string")
    return text


class GenerationClient:
    """Generate roadmaps from prompts with bounded retries."""

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
        temperature: float = 0.7,
        top_p: float = 0.95,
        top_k: int = 40,
        max_output_tokens: int = 8192,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.top_k = top_k
        self.max_output_tokens = max_output_tokens
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _request_body(self, prompt: str) -> dict:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "topP": self.top_p,
                "topK": self.top_k,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    async def _request_text(self, client: httpx.AsyncClient, prompt: str) -> str:
        """Send one request and return the response text.

        Raises:
            TransportError: On network failure, non-2xx status or bad envelope
        """
        try:
            response = await client.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json=self._request_body(prompt),
            )
        except httpx.HTTPError as e:
            raise TransportError("Request to generation service failed", detail=str(e)) from e

        if not response.is_success:
            raise TransportError(
                "Generation service returned an error",
                status_code=response.status_code,
                detail=response.text[:200],
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError("Response body is not JSON", detail=str(e)) from e
        return _envelope_text(data)

    async def _fetch_with_retries(
        self, prompt: str, notify: Notifier
    ) -> tuple[str | None, int, TransportError | None]:
        last_error: TransportError | None = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    text = await self._request_text(client, prompt)
                    return text, attempt, None
                except TransportError as e:
                    last_error = e

                if attempt < self.max_attempts:
                    logger.warning(
                        "Generation attempt failed, retrying",
                        attempt=attempt,
                        max_attempts=self.max_attempts,
                        status_code=last_error.status_code,
                        error=str(last_error),
                    )
                    await notify(
                        Notification(
                            kind=NotificationKind.GENERATION_RETRYING,
                            title="Retrying",
                            message=(
                                f"Generation attempt {attempt} of {self.max_attempts} "
                                f"failed. Retrying in {self.retry_delay:g}s."
                            ),
                            level=NotificationLevel.WARNING,
                        )
                    )
                    await self._sleep(self.retry_delay)

        logger.error(
            "Generation failed after retries",
            attempts=self.max_attempts,
            error=str(last_error),
        )
        await notify(
            Notification(
                kind=NotificationKind.GENERATION_FAILED,
                title="Generation Failed",
                message="Failed to generate your roadmap. Please try again later.",
                level=NotificationLevel.ERROR,
            )
        )
        return None, self.max_attempts, last_error

    async def generate(
        self,
        prompt: str,
        shape: RoadmapShape = RoadmapShape.STEPS,
        *,
        notifier: Notifier | None = None,
    ) -> GenerationOutcome:
        """Generate and validate a roadmap from a prompt.

        Args:
            prompt: Filled prompt; sent verbatim on every attempt
            shape: Expected response shape
            notifier: Receives retrying/failed notifications

        Returns:
            GenerationOutcome; never raises for service or model failures
        """
        notify = notifier or log_notifier

        if not self.is_configured:
            logger.warning("Generation requested without an API key")
            return GenerationOutcome(
                status=GenerationStatus.NOT_CONFIGURED,
                error="No API key configured for the generation service",
            )

        text, attempts, error = await self._fetch_with_retries(prompt, notify)
        if text is None:
            return GenerationOutcome(
                status=GenerationStatus.EXHAUSTED_RETRIES,
                attempts=attempts,
                error=str(error) if error else None,
            )

        expect = "array" if shape == RoadmapShape.STEP_LIST else "object"
        try:
            value = extract_json(text, expect=expect).unwrap()
        except ExtractionError as e:
            return GenerationOutcome(
                status=e.status,
                attempts=attempts,
                raw_text=text,
                error=str(e),
            )

        validation = validate_roadmap(value, shape)
        if not validation.ok:
            return GenerationOutcome(
                status=GenerationStatus.SCHEMA_INVALID,
                attempts=attempts,
                raw_text=text,
                error=validation.error,
                field=validation.field,
            )

        draft = validation.draft
        if draft is None:
            # STEP_LIST responses carry items only
            draft = RoadmapDraft(title="", items=validation.items)

        logger.info(
            "Roadmap generated",
            attempts=attempts,
            shape=shape.value,
            item_count=len(draft.items),
        )
        return GenerationOutcome(
            status=GenerationStatus.OK,
            attempts=attempts,
            raw_text=text,
            draft=draft,
        )


@lru_cache
def get_generation_client() -> GenerationClient:
    """Get configured generation client."""
    settings = get_settings()
    logger.info("Initializing generation client", model=settings.GEMINI_MODEL)
    return GenerationClient(
        api_key=settings.GEMINI_API_KEY,
        base_url=settings.GEMINI_API_BASE_URL,
        model=settings.GEMINI_MODEL,
        temperature=settings.GENERATION_TEMPERATURE,
        top_p=settings.GENERATION_TOP_P,
        top_k=settings.GENERATION_TOP_K,
        max_output_tokens=settings.GENERATION_MAX_OUTPUT_TOKENS,
        max_attempts=settings.GENERATION_MAX_ATTEMPTS,
        retry_delay=settings.GENERATION_RETRY_DELAY,
        timeout=settings.GENERATION_TIMEOUT,
    )
