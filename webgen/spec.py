from __future__ import annotations
import re
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from webgen.errors import SpecValidationError

BRIEF_REQUIRED = "spec.brief is required"

MAX_BRIEF_CHARS = 4000
MAX_PROJECT_NAME_CHARS = 200
MAX_COLOR_CHARS = 32
MAX_STYLE_CHARS = 200
MAX_TONE_CHARS = 100
MAX_PAGES = 12
MAX_PAGE_SLUG_CHARS = 40

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


class WebsiteSpec(BaseModel):
    """Normalized website brief. Field aliases follow the JSON wire names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    project_name: str = Field("Website", alias="projectName")
    brief: str
    primary_color: str = Field("#4f46e5", alias="primaryColor")
    style: str = "modern, clean"
    tone: str = "professional"
    pages: List[str] = Field(default_factory=lambda: ["home"])


def slugify_page(value: Any) -> str:
    s = str(value).strip().lower()
    s = _NON_SLUG_RE.sub("-", s).strip("-")
    return s[:MAX_PAGE_SLUG_CHARS].strip("-")


def normalize_pages(raw: Any) -> List[str]:
    """Slugify page names, drop empties and repeats, and put 'home' first."""
    pages: List[str] = ["home"]
    if not isinstance(raw, list):
        return pages
    for item in raw:
        if item is None:
            continue
        slug = slugify_page(item)
        if not slug or slug in pages:
            continue
        pages.append(slug)
        if len(pages) >= MAX_PAGES:
            break
    return pages


def _text(raw: Dict[str, Any], key: str, default: str, limit: int) -> str:
    val = raw.get(key)
    if not isinstance(val, str):
        return default
    val = val.strip()
    if not val:
        return default
    return val[:limit]


def normalize_spec(raw: Any) -> WebsiteSpec:
    """Validate the request's ``spec`` object and apply defaults and clamps.

    Raises SpecValidationError when ``brief`` is absent, blank or not a
    string. Every other field falls back to a default.
    """
    if not isinstance(raw, dict):
        raise SpecValidationError(BRIEF_REQUIRED)
    brief = raw.get("brief")
    if not isinstance(brief, str) or not brief.strip():
        raise SpecValidationError(BRIEF_REQUIRED)

    return WebsiteSpec(
        project_name=_text(raw, "projectName", "Website", MAX_PROJECT_NAME_CHARS),
        brief=brief.strip()[:MAX_BRIEF_CHARS],
        primary_color=_text(raw, "primaryColor", "#4f46e5", MAX_COLOR_CHARS),
        style=_text(raw, "style", "modern, clean", MAX_STYLE_CHARS),
        tone=_text(raw, "tone", "professional", MAX_TONE_CHARS),
        pages=normalize_pages(raw.get("pages")),
    )
