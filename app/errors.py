"""
Domain exceptions for ADPA.

Routers translate these into HTTP responses; the CLI prints them with a
remediation hint and exits non-zero.
"""
from __future__ import annotations

from typing import List, Optional


class ADPAError(Exception):
    """Base class for all ADPA errors."""


class ConfigurationError(ADPAError):
    """Required configuration is missing or invalid."""

    ENV_HINT = "Copy .env.example to .env and fill in the missing values."

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = list(missing or [])
        if self.missing:
            message = f"{message}: missing {', '.join(self.missing)}"
        super().__init__(f"{message}. {self.ENV_HINT}")


class AIProviderError(ADPAError):
    """The AI provider call failed (non-2xx, network error, or unusable body)."""

    def __init__(self, message: str, provider: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    @property
    def error_type(self) -> str:
        """Coarse classification used for provider metrics."""
        if self.status_code == 429:
            return "rate_limit"
        if self.status_code in (401, 403):
            return "authentication"
        if self.status_code is not None:
            return str(self.status_code)
        if "timed out" in str(self).lower():
            return "timeout"
        return "network"


class JSONParseError(ADPAError):
    """LLM output could not be parsed as JSON."""

    def __init__(self, preview: str):
        super().__init__(f"Could not parse JSON from model output: {preview!r}")
        self.preview = preview


class RetryExhaustedError(ADPAError):
    """An operation kept failing after every permitted retry."""

    def __init__(self, label: str, attempts: int, last_error: Exception):
        super().__init__(f"{label} failed after {attempts} attempt(s): {last_error}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


class TemplateRenderError(ADPAError):
    """A template could not be rendered with the supplied variables."""

    def __init__(self, variable: str):
        super().__init__(f"Required template variable '{variable}' has no value")
        self.variable = variable


class PublishError(ADPAError):
    """Publishing to Confluence or SharePoint failed."""

    def __init__(self, target: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{target} publish failed: {message}")
        self.target = target
        self.status_code = status_code


class VCSError(ADPAError):
    """A git command failed."""
