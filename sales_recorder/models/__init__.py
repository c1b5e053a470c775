"""
Database models for the Sales Call Recorder.
"""
from .base import Base
from .contact import Contact
from .call import Call, CallAnalysis, FollowUpEmail, RecordingMethod
from .conference_call import ConferenceCall, ConferenceStatus

__all__ = [
    "Base",
    "Contact",
    "Call",
    "CallAnalysis",
    "FollowUpEmail",
    "RecordingMethod",
    "ConferenceCall",
    "ConferenceStatus",
]
