"""Reference OpenAI-compatible chat-completions client.

Used by ChatModelService when the caller has no transport of its own.
Rate limits, 5xx answers and connection failures are retried through
tenacity according to a RetryPolicy; a ``Retry-After`` header on a 429
replaces the exponential backoff for that wait. Credentials come from the
constructor or the ``AGENTLOOP_OPENAI_API_KEY`` /
``AGENTLOOP_OPENAI_BASE_URL`` environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx
import tenacity
from tenacity.wait import wait_base

from agentloop.llm.errors import (
    LLMAuthError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)

logger = logging.getLogger(__name__)

API_KEY_ENV = "AGENTLOOP_OPENAI_API_KEY"
BASE_URL_ENV = "AGENTLOOP_OPENAI_BASE_URL"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"

_TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
_AUTH_STATUS_CODES = frozenset({401, 403})


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------

def is_transient(exc: BaseException) -> bool:
    """Whether a failed request is worth another attempt."""
    if isinstance(exc, LLMRateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUS_CODES
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


class _RetryAfterWait(wait_base):
    """Honor a rate-limit ``retry_after`` hint, else defer to ``fallback``."""

    def __init__(self, fallback: wait_base, cap: float) -> None:
        self._fallback = fallback
        self._cap = cap

    def __call__(self, retry_state: tenacity.RetryCallState) -> float:
        outcome = retry_state.outcome
        exc = outcome.exception() if outcome is not None else None
        if isinstance(exc, LLMRateLimitError) and exc.retry_after is not None:
            return min(max(exc.retry_after, 0.0), self._cap)
        return self._fallback(retry_state)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings for transient failures.

    Attributes:
        attempts: Total attempts, the first one included.
        min_wait: Lower bound of the exponential backoff, in seconds.
        max_wait: Upper bound of any single wait, in seconds.
        jitter: Upper bound of the random seconds added to each backoff.
    """

    attempts: int = 3
    min_wait: float = 1.0
    max_wait: float = 30.0
    jitter: float = 2.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")

    def retrying(self) -> tenacity.Retrying:
        """A fresh tenacity.Retrying configured from this policy."""
        backoff = tenacity.wait_exponential(
            multiplier=1, min=self.min_wait, max=self.max_wait
        ) + tenacity.wait_random(0, self.jitter)
        return tenacity.Retrying(
            retry=tenacity.retry_if_exception(is_transient),
            wait=_RetryAfterWait(backoff, self.max_wait),
            stop=tenacity.stop_after_attempt(self.attempts),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )


# ---------------------------------------------------------------------------
# Response checks
# ---------------------------------------------------------------------------

def _retry_after_seconds(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _check_status(response: httpx.Response) -> None:
    """Map an HTTP error status to the client's error types.

    Raises:
        LLMAuthError: On 401/403.
        LLMRateLimitError: On 429.
        httpx.HTTPStatusError: On any other 4xx/5xx.
    """
    status = response.status_code
    if status in _AUTH_STATUS_CODES:
        raise LLMAuthError(f"Authentication failed: HTTP {status} - {response.text}")
    if status == 429:
        raise LLMRateLimitError(
            f"Rate limited: HTTP 429 - {response.text}",
            retry_after=_retry_after_seconds(response),
        )
    response.raise_for_status()


def _completion_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError as exc:
        raise LLMResponseError(f"Response is not JSON: {response.text[:200]}") from exc
    if not isinstance(body, dict) or "choices" not in body:
        raise LLMResponseError(f"Response has no 'choices': {body}")
    return body


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class OpenAIClient:
    """Synchronous client for OpenAI-compatible ``/chat/completions``.

    Implements the LLMClient protocol.

    Usage::

        with OpenAIClient(retry=RetryPolicy(attempts=5)) as client:
            body = client.chat([{"role": "user", "content": "Hello"}])
            print(client.extract_content(body))
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_model: str = DEFAULT_MODEL,
        timeout: float = 120.0,
        retry: RetryPolicy | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create the client.

        Args:
            api_key: API key; falls back to AGENTLOOP_OPENAI_API_KEY.
            base_url: Endpoint root; falls back to AGENTLOOP_OPENAI_BASE_URL,
                then to the OpenAI API.
            default_model: Model for requests that do not name one.
            timeout: Per-request timeout in seconds.
            retry: Backoff policy for transient failures.
            transport: Custom httpx transport, e.g. httpx.MockTransport.

        Raises:
            LLMConfigError: If no API key is available.
        """
        key = api_key or os.environ.get(API_KEY_ENV, "")
        if not key:
            raise LLMConfigError(
                f"No API key provided. Pass api_key= or set the {API_KEY_ENV} "
                "environment variable."
            )
        root = base_url or os.environ.get(BASE_URL_ENV) or DEFAULT_BASE_URL
        self._base_url = root.rstrip("/")
        self._default_model = default_model
        self._retry = retry or RetryPolicy()
        self._http = httpx.Client(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {key}"},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    def build_payload(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        """Request body for ``messages``; unset sampling fields are omitted."""
        payload: dict[str, Any] = {
            "model": model or self._default_model,
            "messages": messages,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        payload.update(extra)
        return payload

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict:
        """Request a completion, retrying transient failures per the policy.

        Args:
            messages: Chat messages (``role``/``content`` dicts).
            model: Overrides ``default_model`` for this request.
            temperature: Sampling temperature.
            max_tokens: Completion length limit.
            **kwargs: Extra request fields passed through unchanged.

        Returns:
            The decoded completion body.

        Raises:
            LLMAuthError: Credentials rejected; never retried.
            LLMRateLimitError: Still rate limited after the last attempt.
            LLMResponseError: Body is not a chat completion.
            httpx.HTTPStatusError: Other HTTP failures.
        """
        payload = self.build_payload(
            messages, model=model, temperature=temperature, max_tokens=max_tokens, **kwargs
        )
        return self._retry.retrying()(self._post, payload)

    def _post(self, payload: dict[str, Any]) -> dict:
        response = self._http.post("/chat/completions", json=payload)
        _check_status(response)
        return _completion_body(response)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> OpenAIClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @staticmethod
    def extract_content(response: dict) -> str:
        """Text of the first choice's message (``""`` when it is null).

        Raises:
            LLMResponseError: If the body has no first choice with a message.
        """
        choices = response.get("choices") if isinstance(response, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise LLMResponseError(f"No message in first choice: {response}")
        return message.get("content") or ""
