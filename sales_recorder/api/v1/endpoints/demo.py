"""
Demo endpoint: run the AI pipeline on a canned call
"""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status

from sales_recorder.api.dependencies import get_ai_service
from sales_recorder.schemas import DemoResponse
from sales_recorder.services.ai_service import AIService

logger = logging.getLogger(__name__)
router = APIRouter()

DEMO_TRANSCRIPT = """Hi, this is John from TechStart Inc. Thanks for taking my call today.

Of course! I've been researching sales automation tools for our growing team.

Great! What specific challenges are you facing with your current sales process?

We're a 30-person startup and our sales team is spending too much time on administrative tasks. We need better lead tracking and follow-up automation. Our budget is around $500-1000 per month.

That's exactly what our platform addresses. When would you like to see results?

Ideally within the next month. I'm the head of sales, but our CEO Sarah will need to approve any final decisions.

Perfect. Let me show you how we can cut your admin time by 60%."""

DEMO_CONTACT = {
    "name": "John Smith",
    "company": "TechStart Inc",
    "email": "john@techstart.com",
}


@router.post("/process-call", response_model=DemoResponse)
async def process_demo_call(ai: AIService = Depends(get_ai_service)):
    """
    Analyze the sample transcript and draft its follow-up email. Nothing is stored.
    """
    logger.info("Demo: processing sample call")
    start = time.perf_counter()
    try:
        analysis = await ai.analyze_call(DEMO_TRANSCRIPT, DEMO_CONTACT)
        email = await ai.generate_follow_up_email(analysis, DEMO_CONTACT)
    except Exception as e:
        logger.error(f"Demo processing failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Demo processing failed: {str(e)}"
        )

    elapsed = time.perf_counter() - start
    return DemoResponse(
        transcript=DEMO_TRANSCRIPT,
        analysis=analysis,
        email=email,
        processing_time=f"{elapsed:.1f} seconds",
    )
