"""
Conference call recording workflow.

A salesperson registers a pending conference session, both parties dial the
conference number, and Twilio reports the finished recording through a
webhook. The recording is then transcribed, analyzed and stored together with
a follow-up email draft.
"""
import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from sales_recorder.core.config import settings
from sales_recorder.models import (
    Call, CallAnalysis, ConferenceCall, ConferenceStatus, Contact, FollowUpEmail, RecordingMethod
)
from sales_recorder.services.ai_service import AIService
from sales_recorder.services.transcription_service import TranscriptionService

logger = logging.getLogger(__name__)


def conference_instructions(conference_number: str, call_id: str) -> str:
    return (
        "Conference Call Recording Instructions:\n"
        "\n"
        f"1. Dial: {conference_number}\n"
        "2. Ask your customer to dial the same number\n"
        "3. The call will be automatically recorded\n"
        "4. AI analysis will begin when the call ends\n"
        "\n"
        f"Call ID: {call_id}"
    )


class ConferenceCallRecorder:
    """Orchestrates conference sessions and post-call AI processing."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        ai_service: AIService,
        transcription_service: TranscriptionService,
        conference_number: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.ai_service = ai_service
        self.transcription_service = transcription_service
        self.conference_number = conference_number or settings.TWILIO_CONFERENCE_NUMBER

    async def create_conference_call(
        self,
        salesperson_phone: str,
        customer_phone: Optional[str] = None,
        contact_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Register a pending conference session and return dial-in instructions."""
        async with self.session_factory() as session:
            async with session.begin():
                conference = ConferenceCall(
                    conference_number=self.conference_number,
                    salesperson_phone=salesperson_phone,
                    customer_phone=customer_phone,
                    contact_id=contact_id,
                    status=ConferenceStatus.PENDING.value,
                )
                session.add(conference)
                await session.flush()
                call_id = conference.id

        logger.info(f"Created conference call {call_id} on {self.conference_number}")
        return {
            "call_id": call_id,
            "conference_number": self.conference_number,
            "instructions": conference_instructions(self.conference_number, call_id),
        }

    async def handle_twilio_webhook(self, form: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Handle a Twilio status callback.

        Only a completed call carrying a RecordingUrl is acted on. Returns the
        processing arguments for the new call, or None when nothing was done.
        """
        call_sid = form.get("CallSid")
        call_status = form.get("CallStatus")
        recording_url = form.get("RecordingUrl")
        to_number = form.get("To")

        logger.info(f"Twilio webhook: {call_status} for {call_sid}")

        if call_status != "completed" or not recording_url:
            return None

        return await self.complete_conference_call(call_sid, recording_url, to_number)

    async def complete_conference_call(
        self,
        call_sid: Optional[str],
        recording_url: str,
        to_number: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """
        Mark the pending conference for to_number completed and create its call row.

        Both writes share one transaction. Re-delivery of the same CallSid is
        not detected.
        """
        logger.info(f"Processing completed conference call: {call_sid}")

        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(ConferenceCall)
                    .where(
                        ConferenceCall.conference_number == to_number,
                        ConferenceCall.status == ConferenceStatus.PENDING.value,
                    )
                    .order_by(ConferenceCall.created_at.asc())
                )
                pending = result.scalars().all()

                if not pending:
                    logger.error(f"No pending conference call found for {to_number}")
                    return None
                if len(pending) > 1:
                    logger.warning(
                        f"{len(pending)} pending conference calls match {to_number}, using the oldest"
                    )

                conference = pending[0]
                conference.mark_completed(recording_url)

                call = Call(
                    contact_id=conference.contact_id,
                    audio_url=recording_url,
                    recording_method=RecordingMethod.CONFERENCE.value,
                    twilio_call_sid=call_sid,
                )
                session.add(call)
                await session.flush()

                processing = {
                    "call_id": call.id,
                    "audio_url": recording_url,
                    "contact_id": conference.contact_id,
                }

        logger.info(f"Conference {conference.id} completed as call {processing['call_id']}")
        return processing

    async def record_voice_call(
        self,
        call_sid: Optional[str],
        recording_url: str,
        duration: Optional[int] = None,
        contact_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create the call row for a finished browser Voice SDK recording."""
        async with self.session_factory() as session:
            async with session.begin():
                call = Call(
                    contact_id=contact_id,
                    audio_url=recording_url,
                    duration=duration,
                    recording_method=RecordingMethod.VOICE_SDK.value,
                    twilio_call_sid=call_sid,
                )
                session.add(call)
                await session.flush()
                call_id = call.id

        logger.info(f"Recorded voice SDK call {call_id} for {call_sid}")
        return {"call_id": call_id, "audio_url": recording_url, "contact_id": contact_id}

    async def create_uploaded_call(
        self,
        audio_path: str,
        contact_id: Optional[str] = None,
        duration: Optional[int] = None,
        recording_method: str = RecordingMethod.UPLOAD.value,
    ) -> str:
        """Create the call row for an uploaded recording and return its id."""
        async with self.session_factory() as session:
            async with session.begin():
                call = Call(
                    contact_id=contact_id,
                    audio_url=audio_path,
                    duration=duration,
                    recording_method=recording_method,
                )
                session.add(call)
                await session.flush()
                return call.id

    async def get_contact(self, contact_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not contact_id:
            return None
        async with self.session_factory() as session:
            contact = await session.get(Contact, contact_id)
            return contact.to_dict() if contact else None

    async def process_call_with_ai(
        self,
        call_id: str,
        audio_url: Optional[str],
        contact_id: Optional[str] = None,
    ) -> bool:
        """
        Transcribe, analyze, draft the email and store the results.
        Runs after the HTTP response; failures are logged and reported as False.
        """
        try:
            logger.info(f"Starting AI processing for call {call_id}")

            transcript = await self.transcription_service.transcribe(audio_url)
            contact = await self.get_contact(contact_id)
            analysis = await self.ai_service.analyze_call(transcript, contact)
            email = await self.ai_service.generate_follow_up_email(analysis, contact)
            await self.save_analysis_results(call_id, transcript, analysis, email)

            logger.info(f"AI processing complete for call {call_id}")
            return True
        except Exception as e:
            logger.error(f"AI processing failed for call {call_id}: {e}", exc_info=True)
            return False

    async def save_analysis_results(
        self,
        call_id: str,
        transcript: str,
        analysis: Dict[str, Any],
        email: Dict[str, Any],
    ) -> None:
        """Store transcript, analysis and email draft in one transaction."""
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(Call).where(Call.id == call_id).values(transcript=transcript)
                )
                session.add(CallAnalysis.from_analysis(call_id, analysis))
                session.add(FollowUpEmail.from_draft(call_id, email))
