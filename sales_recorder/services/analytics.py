"""
Aggregate call statistics for the dashboard.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sales_recorder.models import Call, CallAnalysis, Contact

logger = logging.getLogger(__name__)

RECENT_DAYS = 7
TOP_CALLS_LIMIT = 5


async def total_calls(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(Call.id)))).scalar() or 0


async def average_lead_score(db: AsyncSession) -> Optional[float]:
    avg = (await db.execute(select(func.avg(CallAnalysis.lead_score)))).scalar()
    return round(float(avg), 2) if avg is not None else None


async def calls_since(db: AsyncSession, since: datetime) -> int:
    result = await db.execute(select(func.count(Call.id)).where(Call.created_at >= since))
    return result.scalar() or 0


async def top_calls(db: AsyncSession, limit: int = TOP_CALLS_LIMIT) -> List[Dict[str, Any]]:
    """Highest lead scores first, with the contact when one is linked."""
    result = await db.execute(
        select(
            Call.id,
            Call.created_at,
            CallAnalysis.lead_score,
            Contact.name,
            Contact.company,
        )
        .join(CallAnalysis, CallAnalysis.call_id == Call.id)
        .outerjoin(Contact, Contact.id == Call.contact_id)
        .order_by(desc(CallAnalysis.lead_score), desc(Call.created_at))
        .limit(limit)
    )
    return [
        {
            "id": row.id,
            "created_at": row.created_at.isoformat() if row.created_at else None,
            "lead_score": row.lead_score,
            "name": row.name,
            "company": row.company,
        }
        for row in result.all()
    ]


async def get_dashboard_stats(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    stats = {
        "total_calls": await total_calls(db),
        "avg_lead_score": await average_lead_score(db),
        "calls_this_week": await calls_since(db, now - timedelta(days=RECENT_DAYS)),
        "top_performing_calls": await top_calls(db),
    }
    logger.debug(f"Dashboard stats: {stats['total_calls']} calls, avg score {stats['avg_lead_score']}")
    return stats
