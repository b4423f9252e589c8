from __future__ import annotations
import logging
import threading
from typing import Any, Dict, List, Optional, Type

import requests

from webgen.config import Settings
from webgen.errors import ProviderError

log = logging.getLogger(__name__)

OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

_ERROR_BODY_CHARS = 400


class Provider:
    """A model provider. Subclasses turn one prompt into plain text."""

    name = ""

    def __init__(self, api_key: str, settings: Settings):
        self.api_key = api_key
        self.settings = settings

    def generate(self, model: str, prompt: str) -> str:
        raise NotImplementedError

    def _error(self, model: str, message: str) -> ProviderError:
        return ProviderError(f"{self.name} {model}: {message}", provider=self.name, model=model)

    def _post(self, model: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            resp = requests.post(url, timeout=self.settings.timeout_seconds, **kwargs)
        except requests.RequestException as exc:
            raise self._error(model, f"request failed: {exc!r}") from exc
        if not 200 <= resp.status_code < 300:
            body = (resp.text or "")[:_ERROR_BODY_CHARS]
            log.warning("%s HTTP %s model=%s: %s", self.name, resp.status_code, model, body)
            raise self._error(model, f"HTTP {resp.status_code}: {body}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise self._error(model, "response was not JSON") from exc
        if not isinstance(data, dict):
            raise self._error(model, "response was not a JSON object")
        return data


class OpenRouterProvider(Provider):
    """OpenRouter chat completions; text lives at choices[0].message.content."""

    name = "openrouter"

    def generate(self, model: str, prompt: str) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.settings.openrouter_referer,
            "X-Title": self.settings.openrouter_title,
        }
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }
        data = self._post(model, OPENROUTER_ENDPOINT, headers=headers, json=body)
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise self._error(model, "response had no choices")
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise self._error(model, "empty content")
        return content


class GeminiProvider(Provider):
    """Gemini generateContent; text is the concatenation of the first candidate's parts."""

    name = "gemini"

    def generate(self, model: str, prompt: str) -> str:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.settings.temperature,
                "maxOutputTokens": self.settings.max_tokens,
            },
        }
        data = self._post(
            model,
            GEMINI_ENDPOINT.format(model=model),
            params={"key": self.api_key},
            json=body,
        )
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            raise self._error(model, "response had no candidates")
        content = candidates[0].get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        texts: List[str] = []
        for part in parts or []:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                texts.append(part["text"])
        text = "".join(texts)
        if not text.strip():
            raise self._error(model, "empty content")
        return text


PROVIDERS: Dict[str, Type[Provider]] = {
    OpenRouterProvider.name: OpenRouterProvider,
    GeminiProvider.name: GeminiProvider,
}


def build_providers(settings: Settings) -> Dict[str, Provider]:
    """Instantiate every known provider that has an API key."""
    out: Dict[str, Provider] = {}
    for name, cls in PROVIDERS.items():
        key = settings.api_key_for(name)
        if key:
            out[name] = cls(key, settings)
    return out


def call_with_timeout(provider: Provider, model: str, prompt: str, timeout_s: Optional[float]) -> str:
    """Run ``provider.generate`` on its own daemon thread, waiting at most ``timeout_s``.

    The deadline starts when the call starts. A timed-out call keeps running
    in the background and its result is discarded.
    """
    outcome: Dict[str, Any] = {}
    done = threading.Event()

    def _run() -> None:
        try:
            outcome["text"] = provider.generate(model, prompt)
        except Exception as exc:
            outcome["error"] = exc
        finally:
            done.set()

    t = threading.Thread(target=_run, name=f"llm-call-{provider.name}", daemon=True)
    t.start()
    if not done.wait(timeout_s):
        log.warning("%s model=%s timed out after %.1fs", provider.name, model, timeout_s or 0.0)
        raise ProviderError(
            f"{provider.name} {model}: timed out after {timeout_s:.1f}s",
            provider=provider.name,
            model=model,
        )
    if "error" in outcome:
        raise outcome["error"]
    return outcome["text"]
