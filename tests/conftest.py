import pytest

from slack_rag.config import get_settings
from slack_rag.indexing.models import RetrievedRow, SourceMessage


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path):
    """Keep tests independent of the developer's environment and .env file."""
    for name in (
        "OPENAI_API_KEY",
        "TURBOPUFFER_API_KEY",
        "TURBOPUFFER_NAMESPACE",
        "SLACK_BOT_TOKEN",
        "SLACK_SIGNING_SECRET",
        "JWT_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def message():
    return SourceMessage(
        text="Hello world",
        user_id="U1",
        user_name="Nate",
        user_email="nate@example.com",
        channel_id="C1",
        channel_name="general",
        ts="100.001",
        team_id="T1",
    )


@pytest.fixture
def make_row():
    def _make(**kwargs) -> RetrievedRow:
        data = {"id": "slack:C1:1.0", "content": "text"}
        data.update(kwargs)
        return RetrievedRow.model_validate(data)
    return _make
