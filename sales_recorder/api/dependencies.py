"""
Dependencies for API endpoints
"""
import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from sales_recorder.core.config import settings
from sales_recorder.core.database import get_session_factory
from sales_recorder.services.ai_service import AIService, ai_service
from sales_recorder.services.conference_recorder import ConferenceCallRecorder
from sales_recorder.services.file_storage import FileStorageService
from sales_recorder.services.transcription_service import TranscriptionService, transcription_service
from sales_recorder.services.twilio_service import TwilioDiagnostics
from sales_recorder.services.voice_token import VoiceCredentials

logger = logging.getLogger(__name__)


def get_settings():
    return settings


def get_ai_service() -> AIService:
    return ai_service


def get_transcription_service() -> TranscriptionService:
    return transcription_service


def get_file_storage() -> FileStorageService:
    return FileStorageService()


def get_conference_recorder(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    ai: AIService = Depends(get_ai_service),
    transcriber: TranscriptionService = Depends(get_transcription_service),
    app_settings=Depends(get_settings),
) -> ConferenceCallRecorder:
    """Recorder bound to the running app's database and AI services."""
    return ConferenceCallRecorder(
        session_factory, ai, transcriber, conference_number=app_settings.TWILIO_CONFERENCE_NUMBER
    )


def get_twilio_diagnostics(app_settings=Depends(get_settings)) -> TwilioDiagnostics:
    return TwilioDiagnostics(app_settings)


def get_voice_credentials(app_settings=Depends(get_settings)) -> VoiceCredentials:
    """Signing credentials for browser voice tokens, API key preferred."""
    return VoiceCredentials.from_settings(app_settings)
