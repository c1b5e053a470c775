"""
Analytics API endpoints
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sales_recorder.core.database import get_db
from sales_recorder.schemas import AnalyticsResponse
from sales_recorder.services.analytics import get_dashboard_stats

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=AnalyticsResponse)
async def get_analytics(db: AsyncSession = Depends(get_db)):
    """
    Dashboard statistics: call volume, average lead score and top calls.
    """
    try:
        return await get_dashboard_stats(db)
    except Exception as e:
        logger.error(f"Error computing analytics: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to compute analytics: {str(e)}"
        )
