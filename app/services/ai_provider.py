"""
AI provider client for document generation.

One ``AIProviderClient`` talks to whichever LLM backend the environment points
at: GitHub Models, Azure OpenAI, Google AI Studio, or a local Ollama.  Every
call is a single HTTP request; retrying is the caller's job (see
``app.services.retry``).

Public API
----------
AIProviderClient.complete(system_prompt, user_prompt, max_tokens) -> str
AIProviderClient.validate_configuration()                        -> None
AIProviderClient.check_health()                                  -> str
get_provider_metrics()                                           -> Dict[str, Dict]
"""
from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx

from app.config import Settings, settings
from app.errors import AIProviderError, ConfigurationError

logger = logging.getLogger(__name__)

GITHUB_AI = "github-ai"
AZURE_OPENAI = "azure-openai"
GOOGLE_AI = "google-ai"
OLLAMA = "ollama"

SUPPORTED_PROVIDERS = (GITHUB_AI, AZURE_OPENAI, GOOGLE_AI, OLLAMA)


class AIClient(Protocol):
    """Anything the document generator can ask for a completion."""

    async def complete(
        self, system_prompt: str, user_prompt: str, max_tokens: Optional[int] = None
    ) -> str:
        ...


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ProviderMetrics:
    """Running call statistics for one provider."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_response_time: float = 0.0
    rate_limit_hits: int = 0
    errors_by_type: Dict[str, int] = dataclasses.field(default_factory=dict)

    @property
    def average_response_time(self) -> float:
        if self.total_calls == 0:
            return 0.0
        return self.total_response_time / self.total_calls

    def record_success(self, elapsed: float) -> None:
        self.total_calls += 1
        self.successful_calls += 1
        self.total_response_time += elapsed

    def record_failure(self, error_type: str, elapsed: float) -> None:
        self.total_calls += 1
        self.failed_calls += 1
        self.total_response_time += elapsed
        self.errors_by_type[error_type] = self.errors_by_type.get(error_type, 0) + 1
        if error_type == "rate_limit":
            self.rate_limit_hits += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "average_response_time": round(self.average_response_time, 3),
            "rate_limit_hits": self.rate_limit_hits,
            "errors_by_type": dict(self.errors_by_type),
        }


_provider_metrics: Dict[str, ProviderMetrics] = {}


def get_provider_metrics() -> Dict[str, Dict[str, Any]]:
    """Snapshot of metrics for every provider used in this process."""
    return {name: m.to_dict() for name, m in _provider_metrics.items()}


def reset_provider_metrics() -> None:
    _provider_metrics.clear()


# ---------------------------------------------------------------------------
# Provider detection
# ---------------------------------------------------------------------------

def detect_provider(config: Settings = settings) -> str:
    """
    Pick the provider from configuration.

    Order: explicit AI_PROVIDER, then GOOGLE_AI_API_KEY, then an Azure
    endpoint, then a local Ollama endpoint, falling back to GitHub Models.
    """
    if config.AI_PROVIDER:
        provider = config.AI_PROVIDER.strip().lower()
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unknown AI_PROVIDER '{config.AI_PROVIDER}' "
                f"(expected one of {', '.join(SUPPORTED_PROVIDERS)})"
            )
        return provider

    if config.GOOGLE_AI_API_KEY:
        return GOOGLE_AI

    endpoint = config.AZURE_OPENAI_ENDPOINT or config.GITHUB_ENDPOINT
    if "openai.azure.com" in endpoint:
        return AZURE_OPENAI
    if "localhost:11434" in endpoint or "127.0.0.1:11434" in endpoint:
        return OLLAMA
    return GITHUB_AI


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class AIProviderClient:
    """
    Single-shot completion client over httpx.

    ``transport`` exists so tests can plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: Settings = settings,
        provider: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.provider = provider or detect_provider(config)
        self.timeout = httpx.Timeout(float(config.AI_TIMEOUT), connect=10.0)
        self._transport = transport

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def model(self) -> str:
        if self.provider == GOOGLE_AI:
            return self.config.GOOGLE_AI_MODEL
        if self.provider == OLLAMA:
            return self.config.OLLAMA_LLM_MODEL
        if self.provider == AZURE_OPENAI:
            return self.config.DEPLOYMENT_NAME or self.config.REQUIREMENTS_AGENT_MODEL
        return self.config.REQUIREMENTS_AGENT_MODEL

    def missing_configuration(self) -> List[str]:
        """Names of environment variables the selected provider still needs."""
        c = self.config
        missing: List[str] = []
        if self.provider == GITHUB_AI:
            if not c.GITHUB_TOKEN:
                missing.append("GITHUB_TOKEN")
        elif self.provider == AZURE_OPENAI:
            if not c.AZURE_OPENAI_ENDPOINT:
                missing.append("AZURE_OPENAI_ENDPOINT")
            if not c.AZURE_OPENAI_API_KEY:
                missing.append("AZURE_OPENAI_API_KEY")
            if not c.DEPLOYMENT_NAME:
                missing.append("DEPLOYMENT_NAME")
        elif self.provider == GOOGLE_AI:
            if not c.GOOGLE_AI_API_KEY:
                missing.append("GOOGLE_AI_API_KEY")
        elif self.provider == OLLAMA:
            if not c.OLLAMA_BASE_URL:
                missing.append("OLLAMA_BASE_URL")
        return missing

    def validate_configuration(self) -> None:
        """Raise ``ConfigurationError`` if the provider cannot be called."""
        missing = self.missing_configuration()
        if missing:
            raise ConfigurationError(
                f"AI provider '{self.provider}' is not configured", missing
            )

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete(
        self, system_prompt: str, user_prompt: str, max_tokens: Optional[int] = None
    ) -> str:
        """
        Send one completion request and return the generated text.

        Raises ``AIProviderError`` on any non-2xx status, transport failure,
        non-JSON body, or empty content.
        """
        max_tokens = max_tokens or self.config.AI_MAX_TOKENS
        url, headers, params, payload = self._build_request(
            system_prompt, user_prompt, max_tokens
        )
        metrics = _provider_metrics.setdefault(self.provider, ProviderMetrics())
        started = time.monotonic()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, headers=headers, params=params, json=payload)

            if not 200 <= resp.status_code < 300:
                raise AIProviderError(
                    f"{self.provider} returned HTTP {resp.status_code}: {resp.text[:300]}",
                    provider=self.provider,
                    status_code=resp.status_code,
                )

            try:
                data = resp.json()
            except ValueError as exc:
                raise AIProviderError(
                    f"{self.provider} returned a non-JSON body",
                    provider=self.provider,
                    status_code=resp.status_code,
                ) from exc

            text = self._extract_text(data)
            if not text or not text.strip():
                raise AIProviderError(
                    f"{self.provider} returned empty content",
                    provider=self.provider,
                    status_code=resp.status_code,
                )

        except httpx.TimeoutException as exc:
            error = AIProviderError(
                f"{self.provider} request timed out after {self.config.AI_TIMEOUT}s",
                provider=self.provider,
            )
            metrics.record_failure(error.error_type, time.monotonic() - started)
            logger.error("complete: %s", error)
            raise error from exc
        except httpx.HTTPError as exc:
            error = AIProviderError(
                f"{self.provider} connection error: {exc}", provider=self.provider
            )
            metrics.record_failure(error.error_type, time.monotonic() - started)
            logger.error("complete: %s", error)
            raise error from exc
        except AIProviderError as exc:
            metrics.record_failure(exc.error_type, time.monotonic() - started)
            logger.error("complete: %s", exc)
            raise

        elapsed = time.monotonic() - started
        metrics.record_success(elapsed)
        logger.debug(
            "complete: %s/%s returned %d chars in %.2fs",
            self.provider,
            self.model,
            len(text),
            elapsed,
        )
        return text

    def _build_request(
        self, system_prompt: str, user_prompt: str, max_tokens: int
    ) -> Tuple[str, Dict[str, str], Dict[str, str], Dict[str, Any]]:
        """Return ``(url, headers, query_params, json_body)`` for the provider."""
        c = self.config
        temperature = c.AI_TEMPERATURE
        chat_messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        if self.provider == GITHUB_AI:
            return (
                f"{c.GITHUB_ENDPOINT.rstrip('/')}/chat/completions",
                {"Authorization": f"Bearer {c.GITHUB_TOKEN or ''}"},
                {},
                {
                    "model": self.model,
                    "messages": chat_messages,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )

        if self.provider == AZURE_OPENAI:
            endpoint = (c.AZURE_OPENAI_ENDPOINT or "").rstrip("/")
            return (
                f"{endpoint}/openai/deployments/{self.model}/chat/completions",
                {"api-key": c.AZURE_OPENAI_API_KEY or ""},
                {"api-version": c.AZURE_OPENAI_API_VERSION},
                {
                    "messages": chat_messages,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )

        if self.provider == GOOGLE_AI:
            return (
                f"{c.GOOGLE_AI_BASE_URL.rstrip('/')}/v1beta/models/{self.model}:generateContent",
                {},
                {"key": c.GOOGLE_AI_API_KEY or ""},
                {
                    "systemInstruction": {"parts": [{"text": system_prompt}]},
                    "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
                    "generationConfig": {
                        "maxOutputTokens": max_tokens,
                        "temperature": temperature,
                    },
                },
            )

        # Ollama
        return (
            f"{c.OLLAMA_BASE_URL.rstrip('/')}/api/generate",
            {},
            {},
            {
                "model": self.model,
                "system": system_prompt,
                "prompt": user_prompt,
                "stream": False,
                "options": {"num_predict": max_tokens, "temperature": temperature},
            },
        )

    def _extract_text(self, data: Any) -> str:
        """Pull the generated text out of a provider response body."""
        try:
            if self.provider in (GITHUB_AI, AZURE_OPENAI):
                return data["choices"][0]["message"]["content"] or ""
            if self.provider == GOOGLE_AI:
                parts = data["candidates"][0]["content"]["parts"]
                return "".join(part.get("text", "") for part in parts)
            return data["response"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise AIProviderError(
                f"{self.provider} response is missing the content field",
                provider=self.provider,
            ) from exc

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def check_health(self) -> str:
        """
        Cheap reachability probe for /health.  Never raises.

        Returns "not_configured", "reachable", "unreachable", or for hosted
        providers that cannot be probed without spending tokens, "configured".
        """
        if self.missing_configuration():
            return "not_configured"
        if self.provider != OLLAMA:
            return "configured"

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(5.0), transport=self._transport
            ) as client:
                resp = await client.get(f"{self.config.OLLAMA_BASE_URL.rstrip('/')}/api/tags")
            return "reachable" if resp.status_code == 200 else "unreachable"
        except httpx.HTTPError as exc:
            logger.warning("check_health: Ollama unreachable: %s", exc)
            return "unreachable"
