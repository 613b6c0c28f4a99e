import pytest

from voterroll.config import reset_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Fresh config per test, no log files, no remote endpoint."""
    monkeypatch.setenv("LOG_TO_FILE", "0")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("REMOTE_CONVERTER_URL", raising=False)
    monkeypatch.delenv("AI_MODELS", raising=False)
    monkeypatch.delenv("CONCURRENCY", raising=False)
    monkeypatch.delenv("SKIP_LEADING_PAGES", raising=False)
    monkeypatch.delenv("LOCAL_STRATEGY", raising=False)
    monkeypatch.delenv("INCLUDE_PHOTOS", raising=False)
    reset_config()
    yield
    reset_config()
