import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep READ_DIR/UTC_OFFSET (and anything a .env file sets) out of other tests."""
    for name in ("READ_DIR", "UTC_OFFSET"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
