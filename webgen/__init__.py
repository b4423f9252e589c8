import os

from webgen.config import load_env_file

# Tests stay offline: never pick up real keys from .env under pytest
if not os.getenv("PYTEST_CURRENT_TEST"):
    load_env_file(os.getenv("WEBGEN_ENV_FILE", ".env"))

__version__ = "0.1.0"
