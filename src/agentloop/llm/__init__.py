"""Model-service protocol, reference OpenAI-compatible client, and errors."""

from agentloop.llm.client import OpenAIClient, RetryPolicy
from agentloop.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)
from agentloop.llm.protocols import LLMClient, ModelService
from agentloop.llm.service import ChatModelService

__all__ = [
    "ChatModelService",
    "LLMAuthError",
    "LLMClient",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMResponseError",
    "ModelService",
    "OpenAIClient",
    "RetryPolicy",
]
