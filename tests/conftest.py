from typing import Dict, List, Union

import pytest

from webgen import ratelimit
from webgen.config import Settings
from webgen.errors import ProviderError
from webgen.providers import Provider


class ScriptedProvider(Provider):
    """Returns canned text (or raises) per model and records every call."""

    def __init__(self, name: str, script: Dict[str, Union[str, Exception]]):
        super().__init__("fake-key", Settings())
        self.name = name
        self.script = script
        self.calls: List[str] = []

    def generate(self, model: str, prompt: str) -> str:
        self.calls.append(model)
        out = self.script.get(model, ProviderError(f"{self.name} {model}: no script"))
        if isinstance(out, Exception):
            raise out
        return out


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    ratelimit._reset()
    yield
    ratelimit._reset()
