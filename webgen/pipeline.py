from __future__ import annotations
import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from webgen.config import Candidate
from webgen.errors import ExhaustionError, ProviderError
from webgen.finalize import ensure_full_doc, strip_fences, to_data_uri
from webgen.prompts import build_prompt
from webgen.providers import Provider, call_with_timeout
from webgen.spec import WebsiteSpec

log = logging.getLogger(__name__)

# Stripped model output shorter than this is not a page.
MIN_CONTENT_CHARS = 20
# Finalized documents must be longer than this.
MIN_HTML_CHARS = 50


class GenerationResult(BaseModel):
    html: str
    download_url: str
    model: str
    tried: List[str] = Field(default_factory=list)


def _attempt(
    candidate: Candidate,
    prompt: str,
    spec: WebsiteSpec,
    providers: Dict[str, Provider],
    timeout_s: Optional[float],
    site_url: str,
) -> str:
    provider = providers.get(candidate.provider)
    if provider is None:
        raise ProviderError(f"provider {candidate.provider!r} is not configured", provider=candidate.provider, model=candidate.model)
    text = call_with_timeout(provider, candidate.model, prompt, timeout_s)
    body = strip_fences(text)
    if len(body) < MIN_CONTENT_CHARS:
        raise ProviderError(f"{candidate.label}: output too short ({len(body)} chars)", provider=candidate.provider, model=candidate.model)
    html = ensure_full_doc(body, spec, site_url=site_url)
    if len(html) <= MIN_HTML_CHARS:
        raise ProviderError(f"{candidate.label}: document too short ({len(html)} chars)", provider=candidate.provider, model=candidate.model)
    return html


def generate_document(
    spec: WebsiteSpec,
    candidates: Sequence[Candidate],
    providers: Dict[str, Provider],
    timeout_s: Optional[float] = None,
    site_url: str = "",
) -> GenerationResult:
    """Try each candidate in order and return the first usable document.

    Calls are strictly sequential with no delay between them. Raises
    ExhaustionError carrying every tried label and the last failure message
    once the list runs out.
    """
    prompt = build_prompt(spec)
    tried: List[str] = []
    last_error: Optional[str] = None
    for candidate in candidates:
        tried.append(candidate.label)
        log.info("pipeline attempt=%d candidate=%s", len(tried), candidate.label)
        try:
            html = _attempt(candidate, prompt, spec, providers, timeout_s, site_url)
        except ProviderError as exc:
            last_error = str(exc)
            log.warning("pipeline failed candidate=%s error=%s", candidate.label, last_error)
            continue
        log.info("pipeline success candidate=%s chars=%d", candidate.label, len(html))
        return GenerationResult(html=html, download_url=to_data_uri(html), model=candidate.label, tried=tried)

    log.warning("pipeline exhausted tried=%s", tried)
    raise ExhaustionError(tried, last_error)
