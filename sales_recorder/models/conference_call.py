"""
Conference call model used by the Twilio conference bridge.
"""
import enum
from typing import Optional

from sqlalchemy import Column, ForeignKey, String

from sales_recorder.models.base import Base, CreatedAtMixin, generate_uuid


class ConferenceStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ConferenceCall(Base, CreatedAtMixin):
    """
    A conference session the salesperson and customer both dial into.
    Stays pending until Twilio reports the recorded call as completed.
    """
    __tablename__ = "conference_calls"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    conference_number = Column(String(50), nullable=False, index=True)
    salesperson_phone = Column(String(50), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    contact_id = Column(String(36), ForeignKey("contacts.id"), nullable=True)
    status = Column(String(20), nullable=False, default=ConferenceStatus.PENDING.value, index=True)
    recording_url = Column(String(1000), nullable=True)

    def is_pending(self) -> bool:
        return self.status == ConferenceStatus.PENDING.value

    def mark_completed(self, recording_url: Optional[str]) -> None:
        self.status = ConferenceStatus.COMPLETED.value
        self.recording_url = recording_url
