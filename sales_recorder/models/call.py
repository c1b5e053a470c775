"""
Call, analysis and follow-up email models.
"""
import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
)
from sqlalchemy.orm import validates

from sales_recorder.models.base import (
    Base, CreatedAtMixin, dumps_json, generate_uuid, loads_json
)


class RecordingMethod(str, enum.Enum):
    """How the call audio was captured."""
    UPLOAD = "upload"
    BROWSER = "browser"
    CONFERENCE = "conference"
    VOICE_SDK = "voice_sdk"


class Call(Base, CreatedAtMixin):
    """
    A recorded sales call. The transcript is filled in once AI processing
    finishes.
    """
    __tablename__ = "calls"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    contact_id = Column(String(36), ForeignKey("contacts.id"), nullable=True, index=True)
    audio_url = Column(String(1000), nullable=True)
    transcript = Column(Text, nullable=True)
    duration = Column(Integer, nullable=True)
    recording_method = Column(String(50), nullable=True)
    twilio_call_sid = Column(String(64), nullable=True, index=True)

    @validates("duration")
    def validate_duration(self, key, duration):
        """Validate duration is not negative."""
        if duration is not None and duration < 0:
            raise ValueError("Duration cannot be negative")
        return duration


class CallAnalysis(Base, CreatedAtMixin):
    """LLM analysis of a call transcript."""
    __tablename__ = "call_analysis"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    call_id = Column(String(36), ForeignKey("calls.id"), nullable=False, index=True)
    summary = Column(Text, nullable=True)
    lead_score = Column(Integer, nullable=True, index=True)
    sentiment_score = Column(Float, nullable=True)
    sentiment_label = Column(String(50), nullable=True)
    # JSON-serialized list / map
    action_items = Column(Text, nullable=True)
    key_info = Column(Text, nullable=True)

    @classmethod
    def from_analysis(cls, call_id: str, analysis: Dict[str, Any]) -> "CallAnalysis":
        """Build a row from the dict returned by AIService.analyze_call."""
        sentiment = analysis.get("sentiment") or {}
        return cls(
            call_id=call_id,
            summary=analysis.get("summary"),
            lead_score=analysis.get("lead_score"),
            sentiment_score=sentiment.get("score"),
            sentiment_label=sentiment.get("label"),
            action_items=dumps_json(analysis.get("action_items") or []),
            key_info=dumps_json(analysis.get("key_info") or {}),
        )

    def get_action_items(self) -> List[Dict[str, Any]]:
        return loads_json(self.action_items, default=[])

    def get_key_info(self) -> Dict[str, Any]:
        return loads_json(self.key_info, default={})


class FollowUpEmail(Base, CreatedAtMixin):
    """Draft follow-up email generated for a call."""
    __tablename__ = "follow_up_emails"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    call_id = Column(String(36), ForeignKey("calls.id"), nullable=False, index=True)
    subject = Column(String(500), nullable=True)
    body = Column(Text, nullable=True)
    sent = Column(Boolean, default=False, nullable=False)
    scheduled_for = Column(DateTime, nullable=True)

    @classmethod
    def from_draft(cls, call_id: str, draft: Dict[str, Any], scheduled_for: Optional[datetime] = None) -> "FollowUpEmail":
        return cls(
            call_id=call_id,
            subject=draft.get("subject"),
            body=draft.get("body"),
            scheduled_for=scheduled_for,
        )
