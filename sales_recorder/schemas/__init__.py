"""
Pydantic schemas for API request/response validation
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime


# Contact Schemas
class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @validator("name")
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class ContactResponse(BaseModel):
    id: str
    name: str
    company: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ContactCreated(BaseModel):
    contact_id: str
    message: str = "Contact created successfully"


# Call Schemas
class CallUploadResponse(BaseModel):
    call_id: str
    message: str = "File uploaded and processing started"
    filename: str


class ActionItem(BaseModel):
    task: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None


class CallSummary(BaseModel):
    """A call row joined with its analysis and contact."""
    id: str
    contact_id: Optional[str]
    audio_url: Optional[str]
    transcript: Optional[str]
    duration: Optional[int]
    recording_method: Optional[str]
    twilio_call_sid: Optional[str]
    created_at: Optional[datetime]
    summary: Optional[str] = None
    lead_score: Optional[int] = None
    sentiment_score: Optional[float] = None
    sentiment_label: Optional[str] = None
    action_items: List[ActionItem] = []
    key_info: Dict[str, Any] = {}
    contact_name: Optional[str] = None
    contact_company: Optional[str] = None


class CallDetail(CallSummary):
    email_subject: Optional[str] = None
    email_body: Optional[str] = None


# Conference Schemas
class ConferenceCreate(BaseModel):
    salesperson_phone: str = Field(..., min_length=1, alias="salespersonPhone")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    contact_id: Optional[str] = Field(None, alias="contactId")

    class Config:
        populate_by_name = True


class ConferenceCreated(BaseModel):
    call_id: str
    conference_number: str
    instructions: str


# Twilio Schemas
class VoiceTokenRequest(BaseModel):
    identity: Optional[str] = None
    ttl: Optional[int] = None


class VoiceTokenResponse(BaseModel):
    token: str
    identity: str
    ttl: int
    issued_at: int
    expires_at: int
    method: str


class RecordingCallbackResponse(BaseModel):
    status: str = "success"
    call_id: str


# Analytics Schemas
class TopCall(BaseModel):
    id: str
    created_at: Optional[str]
    lead_score: Optional[int]
    name: Optional[str]
    company: Optional[str]


class AnalyticsResponse(BaseModel):
    total_calls: int
    avg_lead_score: Optional[float]
    calls_this_week: int
    top_performing_calls: List[TopCall]


# Demo Schemas
class DemoResponse(BaseModel):
    transcript: str
    analysis: Dict[str, Any]
    email: Dict[str, str]
    processing_time: str
