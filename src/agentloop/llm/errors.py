"""Model-service transport errors.

All of them inherit from AgentLoopError, so a failing model call surfaces
as a FAILED run with the error attached rather than an unhandled crash.
"""

from __future__ import annotations

from agentloop.exceptions import AgentLoopError


class LLMClientError(AgentLoopError):
    """Base for all model client errors."""


class LLMConfigError(LLMClientError):
    """Client misconfigured, e.g. no API key available."""


class LLMRateLimitError(LLMClientError):
    """The API answered 429.

    Attributes:
        retry_after: Seconds from the Retry-After header, or None.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class LLMAuthError(LLMClientError):
    """The API rejected the credentials (401/403)."""


class LLMResponseError(LLMClientError):
    """The API returned a body that is not a chat completion."""
