"""
Model Backend Wire Formats
Request/response translation for each supported AI backend shape

Two shapes are supported:

1. generate_content  - single content payload (Gemini style)
2. chat_completion   - message list payload (OpenAI / DeepSeek style)

Both translate into the same ``(prompt, options) -> text`` contract used by
:class:`~src.llm.manager.ModelManager`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from src.review.errors import (
    ContentFilteredError,
    EmptyResponseError,
    ResponseTruncatedError,
)


class WireFormat(str, Enum):
    """Backend request/response shape."""
    GENERATE_CONTENT = "generate_content"
    CHAT_COMPLETION = "chat_completion"


@dataclass
class BackendConfig:
    """Configuration for one registered backend.

    Attributes:
        backend_id: Registry key (e.g. "gemini")
        name: Display name
        endpoint: Full endpoint URL
        api_key: Credential (None until configured)
        default_temperature: Temperature used when the caller passes none
        wire_format: Request/response shape
        model: Model name sent in the payload (chat_completion only)
    """
    backend_id: str
    name: str
    endpoint: str
    api_key: Optional[str] = None
    default_temperature: float = 0.7
    wire_format: WireFormat = WireFormat.CHAT_COMPLETION
    model: Optional[str] = None

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


# ==============================================
# generate_content (Gemini)
# ==============================================

def build_generate_content_request(
    config: BackendConfig,
    prompt: str,
    temperature: float,
) -> tuple[dict[str, str], dict[str, Any]]:
    """Build headers and JSON body for a generate_content call."""
    headers = {
        "Content-Type": "application/json",
        "x-goog-api-key": config.api_key or "",
    }
    # maxOutputTokens は付与しない
    body = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": temperature},
    }
    return headers, body


def parse_generate_content_response(config: BackendConfig, data: dict[str, Any]) -> str:
    """Extract text from a generate_content response."""
    feedback = data.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise ContentFilteredError(config.backend_id)

    candidates = data.get("candidates") or []
    candidate = candidates[0] if candidates else {}

    finish_reason = candidate.get("finishReason")
    if finish_reason == "MAX_TOKENS":
        raise ResponseTruncatedError(config.backend_id)
    if finish_reason in ("SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST"):
        raise ContentFilteredError(config.backend_id)

    parts = (candidate.get("content") or {}).get("parts") or []
    content = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    if not content:
        raise EmptyResponseError(config.backend_id)
    return content


# ==============================================
# chat_completion (DeepSeek / OpenAI compatible)
# ==============================================

def build_chat_completion_request(
    config: BackendConfig,
    prompt: str,
    temperature: float,
) -> tuple[dict[str, str], dict[str, Any]]:
    """Build headers and JSON body for a chat_completion call."""
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {config.api_key}",
    }
    # max_tokens は付与しない
    body = {
        "model": config.model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": temperature,
    }
    return headers, body


def parse_chat_completion_response(config: BackendConfig, data: dict[str, Any]) -> str:
    """Extract text from a chat_completion response."""
    choices = data.get("choices") or []
    choice = choices[0] if choices else {}

    finish_reason = choice.get("finish_reason")
    if finish_reason == "length":
        raise ResponseTruncatedError(config.backend_id)
    if finish_reason == "content_filter":
        raise ContentFilteredError(config.backend_id)

    content = (choice.get("message") or {}).get("content")
    if not content:
        raise EmptyResponseError(config.backend_id)
    return content


REQUEST_BUILDERS = {
    WireFormat.GENERATE_CONTENT: build_generate_content_request,
    WireFormat.CHAT_COMPLETION: build_chat_completion_request,
}

RESPONSE_PARSERS = {
    WireFormat.GENERATE_CONTENT: parse_generate_content_response,
    WireFormat.CHAT_COMPLETION: parse_chat_completion_response,
}
