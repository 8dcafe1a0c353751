import pytest


@pytest.fixture(autouse=True)
def no_debug(monkeypatch):
    """tests expect the non-verbose defaults unless they say otherwise"""
    monkeypatch.delenv('DEBUG', raising=False)
