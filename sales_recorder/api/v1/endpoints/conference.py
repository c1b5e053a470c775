"""
Conference call recording endpoints
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sales_recorder.api.dependencies import get_conference_recorder
from sales_recorder.core.database import get_db
from sales_recorder.core.exceptions import NotFoundException
from sales_recorder.models import Contact
from sales_recorder.schemas import ConferenceCreate, ConferenceCreated
from sales_recorder.services.conference_recorder import ConferenceCallRecorder

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/create", response_model=ConferenceCreated)
async def create_conference_call(
    conference_in: ConferenceCreate,
    recorder: ConferenceCallRecorder = Depends(get_conference_recorder),
    db: AsyncSession = Depends(get_db),
):
    """
    Register a pending conference session and return dial-in instructions.
    """
    contact_id = conference_in.contact_id or None
    if contact_id and await db.get(Contact, contact_id) is None:
        raise NotFoundException("Contact not found", details={"contact_id": contact_id})

    try:
        return await recorder.create_conference_call(
            conference_in.salesperson_phone,
            customer_phone=conference_in.customer_phone,
            contact_id=contact_id,
        )
    except Exception as e:
        logger.error(f"Error creating conference call: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create conference call"
        )
