"""
Model Manager
Registry of AI backends behind a single ``call(backend_id, prompt)`` contract
"""

from typing import Any, Optional

import httpx
import structlog

from src.shared.config import Settings, get_settings, http_client
from src.review.errors import (
    BackendAPIError,
    BackendAuthorizationError,
    BackendConnectionError,
    BackendTimeoutError,
    MissingCredentialError,
    ModelBackendError,
    UnknownBackendError,
)
from .backends import REQUEST_BUILDERS, RESPONSE_PARSERS, BackendConfig, WireFormat


logger = structlog.get_logger(__name__)

# Gemini is listed first
BACKEND_ORDER = ("gemini", "deepseek")


def default_backends(settings: Settings) -> list[BackendConfig]:
    """Build the built-in backend registry from settings."""
    return [
        BackendConfig(
            backend_id="gemini",
            name="Gemini",
            endpoint=settings.gemini.endpoint,
            api_key=settings.gemini.api_key,
            default_temperature=settings.gemini.temperature,
            wire_format=WireFormat.GENERATE_CONTENT,
        ),
        BackendConfig(
            backend_id="deepseek",
            name="DeepSeek",
            endpoint=settings.deepseek.endpoint,
            api_key=settings.deepseek.api_key,
            default_temperature=settings.deepseek.temperature,
            wire_format=WireFormat.CHAT_COMPLETION,
            model=settings.deepseek.model,
        ),
    ]


class ModelManager:
    """AI backend adapter.

    Normalizes calls to distinct AI HTTP services behind one interface:
    prompt in, raw text out. Truncation and safety blocks reported by the
    provider are raised as distinct errors and never retried.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        backends: Optional[list[BackendConfig]] = None,
    ):
        """Initialize model manager.

        Args:
            settings: Application settings (defaults to cached settings)
            client: Shared AsyncClient (a short-lived one is used per call if None)
            backends: Backend registry override
        """
        self._settings = settings or get_settings()
        self._client = client
        self._timeout = self._settings.llm.timeout_seconds
        self._models: dict[str, BackendConfig] = {}

        for config in backends if backends is not None else default_backends(self._settings):
            self.register(config)

    def register(self, config: BackendConfig) -> None:
        """Register or replace a backend."""
        self._models[config.backend_id] = config

    def set_api_key(self, backend_id: str, api_key: Optional[str]) -> None:
        """Set the credential for a registered backend (unknown ids are ignored)."""
        model = self._models.get(backend_id)
        if model is not None:
            model.api_key = api_key

    def get_model(self, backend_id: str) -> Optional[BackendConfig]:
        return self._models.get(backend_id)

    def get_available_models(self) -> list[dict[str, Any]]:
        """List registered backends in display order."""
        ordered = [key for key in BACKEND_ORDER if key in self._models]
        ordered += sorted(key for key in self._models if key not in BACKEND_ORDER)
        return [
            {
                "id": key,
                "name": self._models[key].name,
                "hasApiKey": self._models[key].has_api_key,
            }
            for key in ordered
        ]

    async def call(
        self,
        backend_id: str,
        prompt: str,
        *,
        temperature: Optional[float] = None,
        **options: Any,
    ) -> str:
        """Call an AI backend.

        Args:
            backend_id: Registered backend id
            prompt: Prompt text
            temperature: Sampling temperature (backend default if None)
            **options: Extra payload fields merged into the request body

        Returns:
            Raw response text

        Raises:
            UnknownBackendError: backend_id is not registered
            MissingCredentialError: no API key for the backend
            BackendAPIError: non-2xx HTTP status
            ResponseTruncatedError / ContentFilteredError: provider cut-off or block
            BackendTimeoutError / BackendConnectionError: transport failure
        """
        model = self._models.get(backend_id)
        if model is None:
            raise UnknownBackendError(backend_id)
        if not model.api_key:
            raise MissingCredentialError(backend_id)

        build_request = REQUEST_BUILDERS.get(model.wire_format)
        parse_response = RESPONSE_PARSERS.get(model.wire_format)
        if build_request is None or parse_response is None:
            raise ModelBackendError(f"Model {backend_id} not implemented", backend_id)

        effective_temperature = model.default_temperature if temperature is None else temperature
        headers, body = build_request(model, prompt, effective_temperature)
        body.update(options)

        logger.info(
            "Calling model backend",
            backend=backend_id,
            prompt_chars=len(prompt),
            temperature=effective_temperature,
        )
        logger.debug("Model prompt", backend=backend_id, prompt=prompt)

        try:
            async with http_client(self._timeout, self._client) as client:
                response = await client.post(model.endpoint, headers=headers, json=body)
        except httpx.TimeoutException as e:
            logger.warning("Model backend timed out", backend=backend_id, error=str(e))
            raise BackendTimeoutError(backend_id, self._timeout) from e
        except httpx.HTTPError as e:
            logger.warning("Model backend unreachable", backend=backend_id, error=str(e))
            raise BackendConnectionError(
                f"{model.name} request failed: {e}", backend_id
            ) from e

        if response.status_code in (401, 403):
            raise BackendAuthorizationError(backend_id, response.status_code, response.reason_phrase)
        if not response.is_success:
            raise BackendAPIError(backend_id, response.status_code, response.reason_phrase)

        try:
            data = response.json()
        except ValueError as e:
            raise BackendAPIError(
                backend_id, response.status_code, "invalid JSON body"
            ) from e

        content = parse_response(model, data if isinstance(data, dict) else {})
        logger.info("Model backend responded", backend=backend_id, response_chars=len(content))
        return content
