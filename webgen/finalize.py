from __future__ import annotations
import base64
import os
import re
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from webgen.spec import WebsiteSpec

_env = Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(__file__), "templates")),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

_LEADING_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\r?\n?")
_TRAILING_FENCE_RE = re.compile(r"\r?\n?```\s*$")
_STRAY_FENCE_LINE_RE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*\r?\n?", re.MULTILINE)
_FULL_DOC_RE = re.compile(r"<\s*html[\s>]|<!doctype\s+html", re.IGNORECASE)

DESCRIPTION_CHARS = 160


def strip_fences(text: Optional[str]) -> str:
    """Remove markdown code fences around (or stray inside) model output.

    Handles an optional language tag on the opening fence (```html, ```HTML,
    ```xml ...). Input without fences only loses its outer whitespace.
    """
    t = (text or "").strip()
    if "```" not in t:
        return t
    t = _LEADING_FENCE_RE.sub("", t, count=1)
    t = _TRAILING_FENCE_RE.sub("", t, count=1)
    t = _STRAY_FENCE_LINE_RE.sub("", t)
    return t.strip()


def has_document_root(html: str) -> bool:
    return bool(_FULL_DOC_RE.search(html or ""))


def _shell_context(spec: Optional[WebsiteSpec], site_url: str) -> Dict[str, Any]:
    if spec is None:
        return {"title": "Website", "description": "", "canonical": "", "organization": None}
    description = " ".join(spec.brief.split())[:DESCRIPTION_CHARS]
    organization: Dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "Organization",
        "name": spec.project_name,
        "description": description,
    }
    if site_url:
        organization["url"] = site_url
    return {
        "title": spec.project_name,
        "description": description,
        "canonical": site_url,
        "organization": organization,
    }


def ensure_full_doc(html: str, spec: Optional[WebsiteSpec] = None, site_url: str = "") -> str:
    """Return ``html`` untouched if it is already a document, else wrap it.

    The shell carries charset/viewport/title and, when a spec is given,
    description, Open Graph and JSON-LD Organization metadata. Interpolated
    values are HTML-escaped by the template; ``html`` itself is not.
    """
    html = html or ""
    if has_document_root(html):
        return html
    tpl = _env.get_template("shell.html")
    return tpl.render(body=html, **_shell_context(spec, site_url))


def to_data_uri(html: str) -> str:
    encoded = base64.b64encode(html.encode("utf-8")).decode("ascii")
    return "data:text/html;base64," + encoded
