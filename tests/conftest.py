import asyncio
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from sales_recorder.api.dependencies import (
    get_ai_service,
    get_file_storage,
    get_settings,
    get_transcription_service,
)
from sales_recorder.core.config import Settings
from sales_recorder.core.database import create_engine_for, create_session_factory, init_db
from sales_recorder.main import create_app
from sales_recorder.services.ai_service import AIService
from sales_recorder.services.file_storage import FileStorageService

ACCOUNT_SID = "AC" + "1" * 32
API_KEY = "SK" + "2" * 32
APP_SID = "AP" + "3" * 32
API_SECRET = "test-api-secret"
AUTH_TOKEN = "test-auth-token"

FAKE_ANALYSIS = {
    "summary": "Prospect wants a CRM within a quarter.",
    "lead_score": 7,
    "sentiment": {"score": 0.6, "label": "positive"},
    "key_info": {"budget": "$10k", "timeline": "Q3", "decision_makers": "CTO"},
    "action_items": [{"task": "Send pricing", "priority": "high", "due_date": "Friday"}],
    "next_steps": "Send pricing and book a demo",
}


class FakeAIService:
    """Deterministic stand-in for AIService; records what it was asked."""

    def __init__(self, analysis: Optional[Dict[str, Any]] = None):
        self.analysis = analysis or FAKE_ANALYSIS
        self.analyzed: List[Any] = []
        self.emailed: List[Any] = []

    async def analyze_call(self, transcript, contact=None):
        self.analyzed.append((transcript, contact))
        return dict(self.analysis)

    async def generate_follow_up_email(self, analysis, contact=None):
        self.emailed.append((analysis, contact))
        name = (contact or {}).get("name") or "there"
        return {"subject": "Next steps", "body": f"Hi {name}, thanks for your time."}


class FakeTranscriptionService:
    def __init__(self, transcript: str = "Salesperson: hello. Prospect: we need a CRM."):
        self.transcript = transcript
        self.urls: List[Optional[str]] = []

    async def transcribe(self, audio_url):
        self.urls.append(audio_url)
        return self.transcript


def make_settings(**overrides) -> Settings:
    values = {
        "TWILIO_ACCOUNT_SID": ACCOUNT_SID,
        "TWILIO_AUTH_TOKEN": AUTH_TOKEN,
        "TWILIO_API_KEY": API_KEY,
        "TWILIO_API_SECRET": API_SECRET,
        "TWILIO_APP_SID": APP_SID,
        "TWILIO_PHONE_NUMBER": "+15550001111",
        "TWILIO_CONFERENCE_NUMBER": "+15559990000",
        "RECORDING_CALLBACK_URL": "https://example.test/api/v1/twilio/recording-callback",
        "OPENAI_API_KEY": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def engine(tmp_path):
    return create_engine_for(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool, echo=False)


@pytest.fixture
def session_factory(engine):
    asyncio.run(init_db(engine))
    return create_session_factory(engine)


@pytest.fixture
def fake_ai():
    return FakeAIService()


@pytest.fixture
def fake_transcriber():
    return FakeTranscriptionService()


@pytest.fixture
def test_settings():
    return make_settings()


@pytest.fixture
def app(engine, tmp_path, fake_ai, fake_transcriber, test_settings):
    app = create_app(engine)
    app.dependency_overrides[get_ai_service] = lambda: fake_ai
    app.dependency_overrides[get_transcription_service] = lambda: fake_transcriber
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_file_storage] = lambda: FileStorageService(
        upload_dir=str(tmp_path / "uploads"), max_size_bytes=1024
    )
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def offline_ai():
    """A real AIService with no OpenAI client, so every call falls back."""
    service = AIService(api_key=None)
    service.client = None
    return service
