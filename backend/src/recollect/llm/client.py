"""LiteLLM-based client for the answer-generating model."""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    APIResponseValidationError,
    AuthenticationError,
    BadGatewayError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
    UnprocessableEntityError,
)

from recollect.config import ConfigError, load_settings
from recollect.constants.llm import (
    DEFAULT_TEMPERATURE,
    JSON_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    MAX_TOKENS,
)

logger = logging.getLogger(__name__)

# Provider types whose base URL speaks the OpenAI chat completions protocol
_OPENAI_COMPATIBLE = ("openai", "custom")

_RELEVANT_HEADERS = (
    "x-ratelimit-remaining-requests",
    "x-ratelimit-remaining-tokens",
    "x-ratelimit-reset-requests",
    "retry-after",
    "x-request-id",
)

# Provider failures raised by litellm. Its Timeout and status errors do not
# derive from its APIError, so each family is listed.
_PROVIDER_ERRORS = (
    AuthenticationError,
    RateLimitError,
    APIConnectionError,
    Timeout,
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
    UnprocessableEntityError,
    InternalServerError,
    ServiceUnavailableError,
    BadGatewayError,
    APIResponseValidationError,
    APIError,
)


class LLMError(Exception):
    """Base exception for LLM client errors."""

    pass


class LLMConnectionError(LLMError):
    """Raised when unable to connect to the LLM provider."""

    pass


class LLMAuthenticationError(LLMError):
    """Raised when authentication with the LLM provider fails."""

    pass


class LLMRateLimitError(LLMError):
    """Raised when rate limited by the LLM provider."""

    pass


class LLMClient:
    """Chat completion client for one configured provider.

    OpenAI and custom providers are called through the OpenAI protocol at
    their base URL; Anthropic and Google go through their native APIs.
    """

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
        log_path: Path | None = None,
        timeout: float | None = None,
    ):
        """Initialize LLM client.

        Args:
            provider: Provider type (openai, anthropic, google, custom).
            model: Model name as the provider knows it.
            api_key: API key for the provider.
            endpoint: Base URL, used by OpenAI-compatible providers.
            log_path: Optional path to JSONL log file for query logging.
            timeout: Seconds before a completion request is abandoned;
                read from settings when None.
        """
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint
        self.log_path = log_path
        self.timeout = timeout

    def _log_query(
        self,
        prompt: str,
        temperature: float,
        max_tokens: int,
        response: str | None,
        duration_ms: int,
        error: str | None = None,
        error_details: dict | None = None,
    ) -> None:
        """Append a query record to the JSONL log, if one is configured."""
        if not self.log_path:
            return

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            "request": {
                "prompt": prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            "response": response,
            "duration_ms": duration_ms,
            "error": error,
        }
        if error_details:
            entry["error_details"] = error_details

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.debug(f"Could not write LLM query log: {e}")

    def _extract_error_details(self, e: Exception) -> dict | None:
        """Collect status code, rate limit headers and provider from a LiteLLM error."""
        details: dict = {}

        if hasattr(e, "status_code"):
            details["status_code"] = e.status_code

        resp = getattr(e, "response", None)
        if resp is not None and hasattr(resp, "headers"):
            try:
                headers = {
                    k: v for k, v in dict(resp.headers).items() if k.lower() in _RELEVANT_HEADERS
                }
            except (TypeError, ValueError):
                headers = {}
            if headers:
                details["response_headers"] = headers

        if hasattr(e, "llm_provider"):
            details["llm_provider"] = e.llm_provider

        return details or None

    def _get_model_string(self) -> str:
        """Get LiteLLM model string.

        Returns:
            Model string in provider/model format.
        """
        if self.provider in _OPENAI_COMPATIBLE:
            return f"openai/{self.model}"
        if self.provider == "google":
            return f"gemini/{self.model}"
        return f"{self.provider}/{self.model}"

    async def generate(
        self,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion for a single user prompt.

        Args:
            prompt: User prompt.
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.

        Returns:
            Generated text response.

        Raises:
            LLMAuthenticationError: If the provider rejects the key.
            LLMRateLimitError: If the provider rate limits the request.
            LLMConnectionError: If the provider cannot be reached.
            LLMError: For any other provider error.
        """
        timeout = self.timeout
        if temperature is None or max_tokens is None or timeout is None:
            try:
                llm_settings = load_settings().llm
            except (ValueError, OSError, ConfigError):
                # Settings not available
                llm_settings = None
            if temperature is None:
                temperature = (
                    llm_settings.default_temperature if llm_settings else DEFAULT_TEMPERATURE
                )
            if max_tokens is None:
                max_tokens = llm_settings.max_tokens if llm_settings else MAX_TOKENS
            if timeout is None:
                timeout = llm_settings.timeout_seconds if llm_settings else LLM_TIMEOUT_SECONDS

        kwargs = {
            "model": self._get_model_string(),
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.endpoint and self.provider in _OPENAI_COMPATIBLE:
            kwargs["api_base"] = self.endpoint

        start_time = time.perf_counter()
        try:
            response = await acompletion(**kwargs)
        except _PROVIDER_ERRORS as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            self._log_query(
                prompt,
                temperature,
                max_tokens,
                response=None,
                duration_ms=duration_ms,
                error=str(e),
                error_details=self._extract_error_details(e),
            )
            logger.error(f"{self.provider} request for {self.model} failed: {e}")
            if isinstance(e, AuthenticationError):
                raise LLMAuthenticationError(f"Authentication failed: {e}") from e
            if isinstance(e, RateLimitError):
                raise LLMRateLimitError(f"Rate limit exceeded: {e}") from e
            if isinstance(e, (APIConnectionError, Timeout)):
                raise LLMConnectionError(f"Connection failed: {e}") from e
            raise LLMError(f"LLM API error: {e}") from e

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise LLMError(f"No response from {self.provider}")
        result = str(choices[0].message.content or "")
        self._log_query(
            prompt,
            temperature,
            max_tokens,
            response=result,
            duration_ms=int((time.perf_counter() - start_time) * 1000),
        )
        return result

    async def generate_with_json(self, prompt: str) -> str:
        """Generate a completion that should contain JSON, at a low temperature."""
        try:
            json_temperature = load_settings().llm.json_temperature
        except (ValueError, OSError, ConfigError):
            # Settings not available
            json_temperature = JSON_TEMPERATURE
        return await self.generate(prompt, temperature=json_temperature)
