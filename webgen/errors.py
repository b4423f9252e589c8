from __future__ import annotations
from typing import List, Optional


class WebgenError(Exception):
    """Base class for errors raised by the generation pipeline."""


class SpecValidationError(WebgenError):
    """The request's spec is unusable; the caller has to fix it (HTTP 400)."""

    status_code = 400


class ProviderError(WebgenError):
    """One model call failed. The orchestrator records it and moves on."""

    def __init__(self, message: str, provider: str = "", model: str = ""):
        super().__init__(message)
        self.provider = provider
        self.model = model


class ExhaustionError(WebgenError):
    """Every candidate model failed (HTTP 502)."""

    status_code = 502

    def __init__(self, tried: List[str], last_error: Optional[str] = None):
        super().__init__("Model did not return usable HTML")
        self.tried = list(tried)
        self.last_error = last_error
