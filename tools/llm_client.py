"""
GeminiModelClient — the shipped ModelClient for the turn pipeline.

Wraps `google.genai` async generation with:
- token-bucket rate limiting (tools/rate_limiter.py)
- a hard per-attempt timeout via asyncio.wait_for
- bounded retry with exponential backoff for retryable failures
- JSON mode with fence stripping and a parse-recovery pass
"""

import re
import json
import random
import asyncio
import logging
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import errors as genai_errors

from pipeline.ports import JsonGeneration, TextGeneration
from tools.llm_errors import (
    ModelClientError,
    ModelJsonParseError,
    ModelNotConfiguredError,
    ModelRequestError,
    ModelResponseError,
    ModelTimeoutError,
)
from tools.rate_limiter import RateLimiter, model_limiter

logger = logging.getLogger("GeminiModelClient")

RETRYABLE_ERRORS = (ModelTimeoutError, ModelResponseError)
RETRYABLE_STATUS = {408, 429}


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    text = text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif text.startswith("```"):
        text = text.split("```")[1].split("```")[0].strip()
    return text


def parse_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of model text.

    Tries the fence-stripped text first, then the outermost {...} span.
    Raises ModelJsonParseError if neither yields an object.
    """
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if not match:
            raise ModelJsonParseError(f"No JSON object in model output: {cleaned[:120]!r}")
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ModelJsonParseError(f"Unparseable JSON from model: {e}") from e

    if not isinstance(parsed, dict):
        raise ModelJsonParseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


class GeminiModelClient:
    """ModelClient backed by a google-genai Client.

    Args:
        client: A configured `genai.Client`, or None (every call then raises
            ModelNotConfiguredError).
        model_id: Gemini model name.
        timeout: Seconds allowed per attempt.
        max_retries: Total attempts for retryable failures.
        base_delay: Backoff base in seconds.
        limiter: Token bucket consulted before each call.
    """

    def __init__(
        self,
        client: Optional[genai.Client],
        model_id: str = "gemini-2.0-flash",
        timeout: float = 45.0,
        max_retries: int = 2,
        base_delay: float = 1.0,
        limiter: Optional[RateLimiter] = None,
    ):
        self.client = client
        self.model_id = model_id
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.limiter = limiter or model_limiter

    @classmethod
    def from_settings(cls, settings) -> "GeminiModelClient":
        client = genai.Client(api_key=settings.gemini_api_key) if settings.gemini_api_key else None
        return cls(
            client,
            model_id=settings.model_id,
            timeout=settings.model_timeout_seconds,
            max_retries=settings.model_max_retries,
            limiter=RateLimiter.from_settings(settings),
        )

    async def generate_text(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        messages: Optional[List[Dict[str, str]]] = None,
        temperature: float = 0.7,
        max_tokens: int = 450,
        metadata: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> TextGeneration:
        config = genai.types.GenerateContentConfig(
            system_instruction=system,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        text, usage, attempts = await self._request(prompt, messages, config, request_id)
        return TextGeneration(text=text, usage=usage, attempts=attempts, request_id=request_id)

    async def generate_json(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        messages: Optional[List[Dict[str, str]]] = None,
        temperature: float = 0.2,
        max_tokens: int = 450,
        metadata: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> JsonGeneration:
        config = genai.types.GenerateContentConfig(
            system_instruction=system,
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json",
        )
        text, usage, attempts = await self._request(prompt, messages, config, request_id)
        return JsonGeneration(
            json=parse_json_object(text),
            usage=usage,
            attempts=attempts,
            request_id=request_id,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _contents(self, prompt: str, messages: Optional[List[Dict[str, str]]]):
        if not messages:
            return prompt
        contents = []
        for message in messages:
            role = "model" if message.get("role") in ("assistant", "model", "gm") else "user"
            contents.append(genai.types.Content(
                role=role,
                parts=[genai.types.Part(text=message.get("content", ""))],
            ))
        contents.append(genai.types.Content(role="user", parts=[genai.types.Part(text=prompt)]))
        return contents

    async def _raw_request(self, contents, config) -> Any:
        """One generation attempt (no retry), mapped onto the error hierarchy."""
        try:
            return await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model_id,
                    contents=contents,
                    config=config,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ModelTimeoutError(f"Generation timed out after {self.timeout}s") from e
        except genai_errors.APIError as e:
            status = getattr(e, "code", None)
            if isinstance(e, genai_errors.ServerError) or status in RETRYABLE_STATUS:
                raise ModelResponseError(f"Provider error {status}: {e}") from e
            raise ModelRequestError(f"Request rejected ({status}): {e}") from e

    async def _request(self, prompt, messages, config, request_id):
        if self.client is None:
            raise ModelNotConfiguredError("No Gemini client configured (GEMINI_API_KEY unset?)")

        contents = self._contents(prompt, messages)
        last_error: Optional[ModelClientError] = None
        for attempt in range(self.max_retries):
            await self.limiter.acquire()
            try:
                response = await self._raw_request(contents, config)
                text = response.text or ""
                if not text.strip():
                    raise ModelResponseError("Model returned an empty candidate")
                return text, _usage_of(response), attempt + 1
            except RETRYABLE_ERRORS as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt) + random.uniform(0, 0.5)
                    logger.warning(
                        f"Generation {request_id or ''} failed (attempt {attempt + 1}/{self.max_retries}), "
                        f"retrying in {delay:.1f}s: {e}"
                    )
                    await asyncio.sleep(delay)
            # ModelRequestError propagates immediately

        raise last_error  # type: ignore[misc]


def _usage_of(response) -> Dict[str, Any]:
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return {}
    return {
        "prompt_tokens": getattr(usage, "prompt_token_count", None),
        "completion_tokens": getattr(usage, "candidates_token_count", None),
        "total_tokens": getattr(usage, "total_token_count", None),
    }
