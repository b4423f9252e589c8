import base64
import json
import re

import pytest

from webgen.finalize import ensure_full_doc, has_document_root, strip_fences, to_data_uri
from webgen.spec import normalize_spec


def test_strip_fences_removes_html_fence():
    raw = "```html\n<div>Hello</div>\n```"
    assert strip_fences(raw) == "<div>Hello</div>"


@pytest.mark.parametrize("tag", ["", "HTML", "xml", "html "])
def test_strip_fences_tolerates_language_tags(tag):
    raw = f"  ```{tag}\n<p>Hi</p>\n```  \n"
    assert strip_fences(raw) == "<p>Hi</p>"


def test_strip_fences_removes_stray_fence_lines():
    raw = "<header>a</header>\n```\n<main>b</main>"
    assert strip_fences(raw) == "<header>a</header>\n<main>b</main>"


def test_strip_fences_leaves_plain_input_alone():
    raw = "<!doctype html>\n<html><body><code>x = 1</code></body></html>"
    assert strip_fences(raw) == raw


def test_strip_fences_handles_none_and_empty():
    assert strip_fences(None) == ""
    assert strip_fences("```html\n```") == ""


def test_full_document_is_returned_unchanged():
    doc = "<!DOCTYPE html><HTML lang='de'><body>Hallo</body></HTML>"
    assert ensure_full_doc(doc) == doc


def test_html_tag_without_doctype_counts_as_document():
    doc = "<html>\n<body>x</body></html>"
    assert has_document_root(doc)
    assert ensure_full_doc(doc) == doc


def test_fragment_is_wrapped_in_shell():
    out = ensure_full_doc("<main><h1>Hi</h1></main>")
    assert out.startswith("<!doctype html>")
    assert '<meta charset="utf-8"/>' in out
    assert 'name="viewport"' in out
    assert "<title>Website</title>" in out
    assert "<main><h1>Hi</h1></main>" in out
    assert out.count("<html") == 1


def test_ensure_full_doc_is_idempotent():
    spec = normalize_spec({"brief": "Bike repair shop", "projectName": "Spokes"})
    once = ensure_full_doc("<section>Repairs</section>", spec)
    assert ensure_full_doc(once, spec) == once


def test_title_is_escaped():
    spec = normalize_spec({"brief": "x", "projectName": "Tom & Jerry's <\"Cheese\"> Shop"})
    out = ensure_full_doc("<p>body</p>", spec)
    title = re.search(r"<title>(.*?)</title>", out).group(1)
    assert title == "Tom &amp; Jerry&#39;s &lt;&#34;Cheese&#34;&gt; Shop"
    assert "<\"Cheese\">" not in out


def test_shell_carries_seo_metadata_from_spec():
    spec = normalize_spec({"brief": "Fresh bread </script> daily", "projectName": "Crumb"})
    out = ensure_full_doc("<p>bread</p>", spec, site_url="https://crumb.example")
    assert '<meta name="description" content="Fresh bread &lt;/script&gt; daily"/>' in out
    assert '<meta property="og:title" content="Crumb"/>' in out
    assert '<link rel="canonical" href="https://crumb.example"/>' in out
    ld = re.search(r'<script type="application/ld\+json">(.*?)</script>', out, re.S).group(1)
    data = json.loads(ld)
    assert data["@type"] == "Organization"
    assert data["name"] == "Crumb"
    assert data["url"] == "https://crumb.example"
    assert "</script>" not in ld


def test_shell_omits_canonical_without_site_url():
    spec = normalize_spec({"brief": "x"})
    out = ensure_full_doc("<p>y</p>", spec)
    assert "canonical" not in out


def test_data_uri_decodes_to_html():
    html = "<!doctype html><html><body>Olá ✓</body></html>"
    uri = to_data_uri(html)
    prefix = "data:text/html;base64,"
    assert uri.startswith(prefix)
    assert base64.b64decode(uri[len(prefix):]).decode("utf-8") == html
