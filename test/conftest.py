from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _isolated_deepagent_env(monkeypatch: pytest.MonkeyPatch):
    """Keep a developer's ``DEEPAGENT_*`` environment out of the tests."""
    for key in list(os.environ):
        if key.startswith("DEEPAGENT_"):
            monkeypatch.delenv(key, raising=False)
    yield
