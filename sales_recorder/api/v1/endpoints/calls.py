"""
Call management endpoints
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from sales_recorder.api.dependencies import get_conference_recorder, get_file_storage
from sales_recorder.core.database import get_db
from sales_recorder.core.exceptions import NotFoundException
from sales_recorder.models import Call, CallAnalysis, Contact, FollowUpEmail, RecordingMethod
from sales_recorder.models.base import loads_json
from sales_recorder.schemas import CallDetail, CallSummary, CallUploadResponse
from sales_recorder.services.conference_recorder import ConferenceCallRecorder
from sales_recorder.services.file_storage import FileStorageService

logger = logging.getLogger(__name__)
router = APIRouter()

UPLOAD_METHODS = {RecordingMethod.UPLOAD.value, RecordingMethod.BROWSER.value}


def _call_query(with_email: bool = False):
    columns = [
        Call,
        CallAnalysis.summary,
        CallAnalysis.lead_score,
        CallAnalysis.sentiment_score,
        CallAnalysis.sentiment_label,
        CallAnalysis.action_items,
        CallAnalysis.key_info,
        Contact.name.label("contact_name"),
        Contact.company.label("contact_company"),
    ]
    if with_email:
        columns += [FollowUpEmail.subject.label("email_subject"), FollowUpEmail.body.label("email_body")]

    stmt = (
        select(*columns)
        .outerjoin(CallAnalysis, CallAnalysis.call_id == Call.id)
        .outerjoin(Contact, Contact.id == Call.contact_id)
    )
    if with_email:
        stmt = stmt.outerjoin(FollowUpEmail, FollowUpEmail.call_id == Call.id)
    return stmt


def _row_to_dict(row: Any) -> Dict[str, Any]:
    data = row.Call.to_dict()
    mapping = row._mapping
    for key in mapping.keys():
        if key != "Call":
            data[key] = mapping[key]
    data["action_items"] = loads_json(data.get("action_items"), default=[])
    data["key_info"] = loads_json(data.get("key_info"), default={})
    return data


@router.post("/upload", response_model=CallUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_call(
    background_tasks: BackgroundTasks,
    audio: Optional[UploadFile] = File(None),
    contact_id: Optional[str] = Form(None),
    duration: Optional[int] = Form(None),
    recording_method: str = Form(RecordingMethod.UPLOAD.value),
    db: AsyncSession = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    recorder: ConferenceCallRecorder = Depends(get_conference_recorder),
):
    """
    Upload a recorded call and start AI processing in the background.
    """
    if audio is None or not audio.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No audio file provided"
        )
    if recording_method not in UPLOAD_METHODS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported recording method. Allowed: {', '.join(sorted(UPLOAD_METHODS))}"
        )
    if duration is not None and duration < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Duration cannot be negative"
        )

    contact_id = contact_id or None
    if contact_id and await db.get(Contact, contact_id) is None:
        raise NotFoundException("Contact not found", details={"contact_id": contact_id})

    path = await storage.save_upload(audio)

    try:
        call_id = await recorder.create_uploaded_call(
            path,
            contact_id=contact_id,
            duration=duration,
            recording_method=recording_method,
        )
    except Exception as e:
        logger.error(f"Error saving uploaded call: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    background_tasks.add_task(recorder.process_call_with_ai, call_id, path, contact_id)
    logger.info(f"Upload {audio.filename} stored as call {call_id}, processing queued")

    return CallUploadResponse(call_id=call_id, filename=path.replace("\\", "/").rsplit("/", 1)[-1])


@router.get("", response_model=List[CallSummary])
async def list_calls(db: AsyncSession = Depends(get_db)):
    """
    List calls newest first, each joined with its analysis and contact.
    """
    result = await db.execute(_call_query().order_by(desc(Call.created_at)))
    return [_row_to_dict(row) for row in result.all()]


@router.get("/{call_id}", response_model=CallDetail)
async def get_call(call_id: str, db: AsyncSession = Depends(get_db)):
    """
    Get one call with its analysis, contact and follow-up email.
    """
    result = await db.execute(_call_query(with_email=True).where(Call.id == call_id))
    row = result.first()
    if row is None:
        raise NotFoundException("Call not found", details={"call_id": call_id})
    return _row_to_dict(row)
