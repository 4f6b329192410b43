"""
Completion invoker - wraps the Claude Messages API.

Returns raw text, or a validated pydantic object when an expected shape is
given. Transport failures and timeouts raise CompletionServiceError;
replies that do not fit the shape raise SchemaMismatchError.
"""

import asyncio
import json
from typing import Type, TypeVar, Union

import anthropic
import httpx
from anthropic import AsyncAnthropic
from pydantic import BaseModel, ValidationError

from taskdesigner.config import Settings, settings as default_settings
from taskdesigner.exceptions import CompletionServiceError, SchemaMismatchError
from taskdesigner.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_SYSTEM_PROMPT = (
    "You are an instructional design assistant helping a teacher build a "
    "performance task for a virtual school serving neurodiverse learners."
)


def create_anthropic_client(config: Settings | None = None) -> AsyncAnthropic:
    """Build the async Anthropic client used by the invoker."""
    config = config or default_settings
    http_client = httpx.AsyncClient(default_encoding="utf-8")
    return AsyncAnthropic(
        api_key=config.anthropic_api_key,
        http_client=http_client,
        max_retries=0,
    )


def parse_json(text: str) -> dict:
    """Strip optional markdown fences then parse JSON."""
    t = text.strip()
    if t.startswith("```json"):
        t = t[7:]
    if t.startswith("```"):
        t = t[3:]
    if t.endswith("```"):
        t = t[:-3]
    t = t.strip()
    try:
        return json.loads(t)
    except json.JSONDecodeError:
        # Prose around the object: take the outermost braces
        start, end = t.find("{"), t.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(t[start:end + 1])


class CompletionInvoker:
    """Single entry point for calls to the completion service."""

    def __init__(
        self,
        client: AsyncAnthropic | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or default_settings
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        # Created lazily so the service can start without an API key
        if self._client is None:
            self._client = create_anthropic_client(self.config)
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client, if one was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def invoke(
        self,
        prompt: str,
        expected_shape: Type[T] | None = None,
        *,
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Union[T, str]:
        """
        Send a prompt and return text or a validated object.

        Args:
            prompt: Full user prompt text
            expected_shape: Pydantic model the reply must match, or None
            system: System prompt override
            temperature: Sampling temperature override
            max_tokens: Token limit override

        Raises:
            CompletionServiceError: Timeout, API error or empty reply
            SchemaMismatchError: Reply does not match expected_shape
        """
        text = await self._complete(
            prompt,
            system=system or DEFAULT_SYSTEM_PROMPT,
            temperature=self.config.structured_temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.config.completion_max_tokens,
        )

        if expected_shape is None:
            return text

        shape_name = expected_shape.__name__
        try:
            data = parse_json(text)
        except json.JSONDecodeError as e:
            logger.warning("completion_json_invalid", shape=shape_name, error=str(e))
            raise SchemaMismatchError(shape_name, f"invalid JSON: {e}", text) from e

        try:
            return expected_shape.model_validate(data)
        except ValidationError as e:
            logger.warning("completion_shape_mismatch", shape=shape_name, errors=e.error_count())
            raise SchemaMismatchError(shape_name, str(e), text) from e

    async def _complete(
        self,
        prompt: str,
        *,
        system: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        timeout = self.config.completion_timeout_seconds
        try:
            response = await asyncio.wait_for(
                self.client.messages.create(
                    model=self.config.claude_model,
                    max_tokens=max_tokens,
                    system=system,
                    temperature=temperature,
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("completion_timeout", timeout_seconds=timeout)
            raise CompletionServiceError(f"Completion timed out after {timeout}s", e) from e
        except anthropic.APIError as e:
            logger.error("completion_api_error", error_type=type(e).__name__, error=str(e))
            raise CompletionServiceError(f"Completion request failed: {e}", e) from e
        except Exception as e:
            logger.exception("completion_call_failed", error_type=type(e).__name__)
            raise CompletionServiceError(f"Completion call failed: {e}", e) from e

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        ).strip()
        if not text:
            raise CompletionServiceError("Completion returned no text")

        logger.debug(
            "completion_received",
            chars=len(text),
            stop_reason=getattr(response, "stop_reason", None),
        )
        return text
