"""
Contact management endpoints
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from sales_recorder.core.database import get_db
from sales_recorder.core.exceptions import NotFoundException
from sales_recorder.models import Contact
from sales_recorder.schemas import ContactCreate, ContactCreated, ContactResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=ContactCreated, status_code=status.HTTP_201_CREATED)
async def create_contact(
    contact_in: ContactCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Create a prospect contact.
    """
    try:
        contact = Contact(**contact_in.dict())
        db.add(contact)
        await db.flush()
        logger.info(f"Created contact {contact.id}")
        return ContactCreated(contact_id=contact.id)
    except Exception as e:
        logger.error(f"Error creating contact: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create contact: {str(e)}"
        )


@router.get("", response_model=List[ContactResponse])
async def list_contacts(db: AsyncSession = Depends(get_db)):
    """List contacts, newest first."""
    result = await db.execute(select(Contact).order_by(desc(Contact.created_at)))
    return result.scalars().all()


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(contact_id: str, db: AsyncSession = Depends(get_db)):
    contact = await db.get(Contact, contact_id)
    if contact is None:
        raise NotFoundException("Contact not found", details={"contact_id": contact_id})
    return contact
