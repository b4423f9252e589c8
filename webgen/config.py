from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

# Free OpenRouter models used by the original deployment, in fallback order
DEFAULT_OPENROUTER_MODELS: Tuple[str, ...] = (
    "mistralai/devstral-2512:free",
    "nvidia/nemotron-3-nano-30b-a3b:free",
    "nex-agi/deepseek-v3.1-nex-n1:free",
)
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost:5173",
    "http://localhost:3000",
)

# provider name -> env var holding its key
PROVIDER_KEY_ENV: Dict[str, str] = {
    "openrouter": "OPENROUTER_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class Candidate(BaseModel):
    """One entry of the fallback list: which provider to call with which model."""

    model_config = ConfigDict(frozen=True)

    provider: str
    model: str

    @property
    def label(self) -> str:
        return f"{self.provider}:{self.model}"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    openrouter_api_key: str = ""
    gemini_api_key: str = ""
    candidates: List[Candidate] = Field(default_factory=list)
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    rate_limit_max: int = 30
    rate_limit_window_seconds: int = 60
    timeout_ms: int = 60000
    temperature: float = 0.4
    max_tokens: int = 2500
    openrouter_referer: str = "https://aiwebsitegenerator.onrender.com"
    openrouter_title: str = "AI Website Generator"
    site_url: str = ""
    max_body_bytes: int = 1024 * 1024

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def api_key_for(self, provider: str) -> str:
        if provider == "openrouter":
            return self.openrouter_api_key
        if provider == "gemini":
            return self.gemini_api_key
        return ""


class ConfigCheck(BaseModel):
    """Outcome of the startup configuration check."""

    ok: bool
    candidates: List[str] = Field(default_factory=list)
    missing_keys: List[str] = Field(default_factory=list)
    unknown_providers: List[str] = Field(default_factory=list)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("config: %s=%r is not an integer; using %d", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("config: %s=%r is not a number; using %s", name, raw, default)
        return default


def parse_env_lines(lines: Iterable[str]) -> Dict[str, str]:
    """Parse ``KEY=value`` lines; comments, blanks and ``export`` prefixes are tolerated."""
    out: Dict[str, str] = {}
    for line in lines:
        s = line.strip()
        if s.startswith("export "):
            s = s[len("export "):].lstrip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        key, _, val = s.partition("=")
        key, val = key.strip(), val.strip()
        if len(val) >= 2 and val[0] == val[-1] and val[0] in "\"'":
            val = val[1:-1]
        if key:
            out[key] = val
    return out


def load_env_file(path: str = ".env") -> int:
    """Copy values from an env file into ``os.environ`` without overriding exported ones.

    Returns how many variables were set. A missing or unreadable file sets none.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return 0
    try:
        values = parse_env_lines(env_path.read_text(encoding="utf-8").splitlines())
    except (OSError, UnicodeDecodeError) as exc:
        log.warning("config: could not read %s: %r", env_path, exc)
        return 0
    applied = 0
    for key, val in values.items():
        if key not in os.environ:
            os.environ[key] = val
            applied += 1
    return applied


def _split_csv(raw: str) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


def parse_candidates(raw: str) -> List[Candidate]:
    """Parse ``provider:model,provider:model``.

    Model ids may contain ':' themselves (``mistralai/devstral-2512:free``),
    so only the first colon separates provider from model. Entries without a
    provider prefix are ignored.
    """
    out: List[Candidate] = []
    for item in _split_csv(raw):
        provider, sep, model = item.partition(":")
        provider = provider.strip().lower()
        model = model.strip()
        if not sep or not provider or not model:
            log.warning("config: ignoring malformed candidate %r", item)
            continue
        out.append(Candidate(provider=provider, model=model))
    return out


def default_candidates(gemini_api_key: str = "") -> List[Candidate]:
    out = [Candidate(provider="openrouter", model=m) for m in DEFAULT_OPENROUTER_MODELS]
    if gemini_api_key:
        out.append(Candidate(provider="gemini", model=DEFAULT_GEMINI_MODEL))
    return out


def load_settings() -> Settings:
    openrouter_key = os.getenv("OPENROUTER_API_KEY", "").strip()
    gemini_key = os.getenv("GEMINI_API_KEY", "").strip()
    raw_candidates = os.getenv("LLM_CANDIDATES", "").strip()
    candidates = parse_candidates(raw_candidates) if raw_candidates else default_candidates(gemini_key)
    origins = _split_csv(os.getenv("CORS_ORIGINS", "")) or list(DEFAULT_CORS_ORIGINS)
    return Settings(
        openrouter_api_key=openrouter_key,
        gemini_api_key=gemini_key,
        candidates=candidates,
        host=os.getenv("HOST", "0.0.0.0").strip() or "0.0.0.0",
        port=_env_int("PORT", 5000),
        cors_origins=origins,
        rate_limit_max=max(1, _env_int("RATE_LIMIT_MAX", 30)),
        rate_limit_window_seconds=max(1, _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)),
        timeout_ms=max(1, _env_int("LLM_TIMEOUT_MS", 60000)),
        temperature=_env_float("LLM_TEMPERATURE", 0.4),
        max_tokens=max(1, _env_int("LLM_MAX_TOKENS", 2500)),
        openrouter_referer=os.getenv("OPENROUTER_REFERER", "https://aiwebsitegenerator.onrender.com").strip(),
        openrouter_title=os.getenv("OPENROUTER_TITLE", "AI Website Generator").strip(),
        site_url=os.getenv("SITE_URL", "").strip(),
        max_body_bytes=max(1, _env_int("MAX_BODY_BYTES", 1024 * 1024)),
    )


def check_settings(settings: Settings) -> ConfigCheck:
    """Validate that every configured candidate can actually be called.

    Returns a structured result instead of exiting; the HTTP layer refuses
    generation requests while ``ok`` is False.
    """
    missing: List[str] = []
    unknown: List[str] = []
    for cand in settings.candidates:
        env_name = PROVIDER_KEY_ENV.get(cand.provider)
        if env_name is None:
            if cand.provider not in unknown:
                unknown.append(cand.provider)
            continue
        if not settings.api_key_for(cand.provider) and env_name not in missing:
            missing.append(env_name)
    ok = bool(settings.candidates) and not missing and not unknown
    return ConfigCheck(
        ok=ok,
        candidates=[c.label for c in settings.candidates],
        missing_keys=missing,
        unknown_providers=unknown,
    )


def describe_failure(check: ConfigCheck) -> Optional[str]:
    if check.ok:
        return None
    if not check.candidates:
        return "no LLM candidates configured"
    parts = []
    if check.missing_keys:
        parts.append("missing " + ", ".join(check.missing_keys))
    if check.unknown_providers:
        parts.append("unknown providers " + ", ".join(check.unknown_providers))
    return "; ".join(parts)
