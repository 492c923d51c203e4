"""
Unit test configuration.

Settings must come only from what a test sets: no .env file, and no
VERIFICATION_* / ENV variables leaking in from the developer's shell.
"""

import os

import pytest


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch):
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})
    for name in list(os.environ):
        if name.upper().startswith("VERIFICATION_") or name.upper() == "ENV":
            monkeypatch.delenv(name, raising=False)
