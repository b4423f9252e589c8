import threading

import pytest

from conftest import ScriptedProvider
from webgen import pipeline
from webgen.config import Candidate
from webgen.errors import ExhaustionError, ProviderError
from webgen.spec import normalize_spec

GOOD_HTML = "<!doctype html><html><head><title>Shop</title></head><body><h1>Shop</h1></body></html>"


def _spec():
    return normalize_spec({"brief": "A tea shop", "projectName": "Steep"})


def _cands(*models, provider="openrouter"):
    return [Candidate(provider=provider, model=m) for m in models]


def test_first_success_stops_the_loop():
    fake = ScriptedProvider("openrouter", {"m1": GOOD_HTML, "m2": GOOD_HTML})
    result = pipeline.generate_document(_spec(), _cands("m1", "m2"), {"openrouter": fake})
    assert result.html == GOOD_HTML
    assert result.tried == ["openrouter:m1"]
    assert result.model == "openrouter:m1"
    assert fake.calls == ["m1"]


def test_falls_through_two_failures_to_third():
    fake = ScriptedProvider(
        "openrouter",
        {
            "m1": ProviderError("openrouter m1: HTTP 500: boom"),
            "m2": ProviderError("openrouter m2: timed out after 1.0s"),
            "m3": "```html\n" + GOOD_HTML + "\n```",
        },
    )
    result = pipeline.generate_document(_spec(), _cands("m1", "m2", "m3"), {"openrouter": fake})
    assert result.html == GOOD_HTML
    assert result.tried == ["openrouter:m1", "openrouter:m2", "openrouter:m3"]
    assert fake.calls == ["m1", "m2", "m3"]
    assert result.download_url.startswith("data:text/html;base64,")


def test_mixed_providers_in_configured_order():
    router = ScriptedProvider("openrouter", {"m1": ProviderError("down")})
    gemini = ScriptedProvider("gemini", {"g1": "<section><h2>Teas</h2><p>Green and black.</p></section>"})
    cands = _cands("m1") + _cands("g1", provider="gemini")
    result = pipeline.generate_document(_spec(), cands, {"openrouter": router, "gemini": gemini})
    assert result.tried == ["openrouter:m1", "gemini:g1"]
    assert "<title>Steep</title>" in result.html
    assert "<h2>Teas</h2>" in result.html


def test_short_output_counts_as_failure():
    fake = ScriptedProvider("openrouter", {"m1": "```html\nok\n```", "m2": GOOD_HTML})
    result = pipeline.generate_document(_spec(), _cands("m1", "m2"), {"openrouter": fake})
    assert result.tried == ["openrouter:m1", "openrouter:m2"]
    assert result.html == GOOD_HTML


def test_exhaustion_reports_every_candidate_and_last_error():
    fake = ScriptedProvider(
        "openrouter",
        {"m1": ProviderError("first"), "m2": "tiny", "m3": ProviderError("openrouter m3: HTTP 502: bad gateway")},
    )
    with pytest.raises(ExhaustionError) as ei:
        pipeline.generate_document(_spec(), _cands("m1", "m2", "m3"), {"openrouter": fake})
    assert ei.value.tried == ["openrouter:m1", "openrouter:m2", "openrouter:m3"]
    assert ei.value.last_error == "openrouter m3: HTTP 502: bad gateway"
    assert str(ei.value) == "Model did not return usable HTML"


def test_unconfigured_provider_is_recorded_and_skipped():
    fake = ScriptedProvider("openrouter", {"m1": GOOD_HTML})
    cands = _cands("g1", provider="gemini") + _cands("m1")
    result = pipeline.generate_document(_spec(), cands, {"openrouter": fake})
    assert result.tried == ["gemini:g1", "openrouter:m1"]


def test_empty_candidate_list_is_exhausted():
    with pytest.raises(ExhaustionError) as ei:
        pipeline.generate_document(_spec(), [], {})
    assert ei.value.tried == []
    assert ei.value.last_error is None


def test_hung_candidate_times_out_and_next_one_wins():
    release = threading.Event()

    class Stuck(ScriptedProvider):
        def generate(self, model, prompt):
            self.calls.append(model)
            release.wait(5)
            return GOOD_HTML

    stuck = Stuck("openrouter", {})
    gemini = ScriptedProvider("gemini", {"g1": GOOD_HTML})
    cands = _cands("m1") + _cands("g1", provider="gemini")
    try:
        result = pipeline.generate_document(_spec(), cands, {"openrouter": stuck, "gemini": gemini}, timeout_s=0.05)
    finally:
        release.set()
    assert result.html == GOOD_HTML
    assert result.model == "gemini:g1"
    assert result.tried == ["openrouter:m1", "gemini:g1"]
    assert stuck.calls == ["m1"]
