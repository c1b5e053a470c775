"""
Service layer: token issuance, AI processing, Twilio helpers and storage.
"""
from .ai_service import AIService, ai_service
from .conference_recorder import ConferenceCallRecorder
from .file_storage import FileStorageService, FileTooLargeError
from .transcription_service import TranscriptionService, transcription_service
from .twilio_service import TwilioDiagnostics, build_dial_twiml, build_error_twiml
from .voice_token import (
    SigningMethod,
    VoiceCredentials,
    VoiceToken,
    clean_identity,
    issue_voice_token,
    verify_voice_token,
)

__all__ = [
    "AIService",
    "ai_service",
    "ConferenceCallRecorder",
    "FileStorageService",
    "FileTooLargeError",
    "TranscriptionService",
    "transcription_service",
    "TwilioDiagnostics",
    "build_dial_twiml",
    "build_error_twiml",
    "SigningMethod",
    "VoiceCredentials",
    "VoiceToken",
    "clean_identity",
    "issue_voice_token",
    "verify_voice_token",
]
