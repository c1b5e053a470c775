"""
AI analysis service: call analysis and follow-up email drafting via OpenAI.

Both operations degrade to fixed sample content when OpenAI is unavailable
or returns something unusable.
"""
import copy
import json
import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from sales_recorder.core.config import settings

logger = logging.getLogger(__name__)

FALLBACK_ANALYSIS: Dict[str, Any] = {
    "summary": "Productive call with TechCorp about CRM needs. Strong interest and clear budget/timeline.",
    "lead_score": 8,
    "sentiment": {"score": 0.85, "label": "positive"},
    "key_info": {
        "budget": "$20,000-$30,000 annually",
        "timeline": "2 months",
        "decision_makers": "CEO Michael, Head of Operations, and contact",
    },
    "action_items": [
        {"task": "Send demo materials", "priority": "high", "due_date": "Today"},
        {"task": "Schedule full demo presentation", "priority": "high", "due_date": "Next week"},
        {"task": "Prepare customized proposal", "priority": "medium", "due_date": "After demo"},
    ],
    "next_steps": "Send demo materials today, schedule presentation for next week, prepare customized solution proposal",
}

FALLBACK_EMAIL_SUBJECT = "Demo Materials + Next Steps - TechCorp CRM Solution"
FALLBACK_EMAIL_BODY = """Hi {name},

Thank you for the productive conversation today! I was excited to learn about your growth and your need for a scalable customer management solution.

As promised, I'm attaching our demo materials that show how our platform handles:
- Customer interaction tracking
- Integration with existing tools
- Scalable architecture for growing teams

Based on your timeline of 2 months and budget range of $20-30K annually, our Enterprise package would be a perfect fit.

I'd love to schedule a customized demo for you and the rest of the decision makers next week. I can show you exactly how our solution would work with your specific use case.

Would Tuesday or Wednesday afternoon work for a 45-minute presentation?

Best regards,
Sales Team

P.S. I've also included some case studies from similar companies who saw immediate ROI after implementation."""

SENTIMENT_LABELS = ("positive", "neutral", "negative")


def describe_contact(contact: Optional[Dict[str, Any]], default: str = "Unknown") -> str:
    if not contact or not contact.get("name"):
        return default
    if contact.get("company"):
        return f"{contact['name']} from {contact['company']}"
    return contact["name"]


def extract_json(text: str) -> Dict[str, Any]:
    """Parse a JSON object from a model reply, tolerating markdown fences."""
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]
    result = json.loads(text.strip())
    if not isinstance(result, dict):
        raise ValueError("Expected a JSON object")
    return result


def sentiment_label_for(score: float) -> str:
    if score >= 0.3:
        return "positive"
    if score <= -0.3:
        return "negative"
    return "neutral"


def _optional_text(value: Any) -> Optional[str]:
    """Action item fields are stored and served as strings."""
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def normalize_analysis(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Coerce a model reply into the stored analysis shape. Accepts both
    snake_case and the camelCase keys older prompts produced.
    """
    lead_score = raw.get("lead_score", raw.get("leadScore"))
    try:
        lead_score = int(round(float(lead_score)))
    except (TypeError, ValueError):
        raise ValueError(f"Invalid lead score: {lead_score!r}")
    lead_score = max(1, min(10, lead_score))

    sentiment = raw.get("sentiment") or {}
    if not isinstance(sentiment, dict):
        sentiment = {}
    try:
        score = float(sentiment.get("score", 0.0))
    except (TypeError, ValueError):
        score = 0.0
    label = str(sentiment.get("label") or "").lower()
    if label not in SENTIMENT_LABELS:
        label = sentiment_label_for(score)

    key_info = raw.get("key_info", raw.get("keyInfo")) or {}
    if isinstance(key_info, dict) and "decisionMakers" in key_info:
        key_info["decision_makers"] = key_info.pop("decisionMakers")

    action_items = raw.get("action_items", raw.get("actionItems")) or []
    items = []
    for item in action_items if isinstance(action_items, list) else []:
        if isinstance(item, str):
            items.append({"task": item, "priority": "medium", "due_date": None})
        elif isinstance(item, dict):
            items.append({
                "task": _optional_text(item.get("task")),
                "priority": _optional_text(item.get("priority", "medium")),
                "due_date": _optional_text(item.get("due_date", item.get("dueDate"))),
            })

    return {
        "summary": raw.get("summary") or "",
        "lead_score": lead_score,
        "sentiment": {"score": score, "label": label},
        "key_info": key_info if isinstance(key_info, dict) else {},
        "action_items": items,
        "next_steps": raw.get("next_steps", raw.get("nextSteps")) or "",
    }


class AIService:
    """OpenAI-backed call analysis"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        self.model = model or settings.OPENAI_MODEL
        self.client = client
        api_key = api_key or settings.OPENAI_API_KEY
        if self.client is None and api_key:
            self.client = AsyncOpenAI(api_key=api_key)

    @property
    def configured(self) -> bool:
        return self.client is not None

    def _get_analysis_prompt(self, transcript: str, contact: Optional[Dict[str, Any]]) -> str:
        return f"""Analyze this sales call transcript and provide a detailed analysis.

Contact: {describe_contact(contact)}
Transcript:
{transcript}

Provide:
1. Summary (2-3 sentences)
2. Lead score (1-10)
3. Sentiment analysis
4. Key information extracted (budget, timeline, decision makers)
5. Action items with priorities
6. Recommended next steps

Return ONLY a JSON object with this structure:
{{
    "summary": "...",
    "lead_score": 8,
    "sentiment": {{"score": 0.8, "label": "positive"}},
    "key_info": {{"budget": "...", "timeline": "...", "decision_makers": "..."}},
    "action_items": [{{"task": "...", "priority": "high", "due_date": "..."}}],
    "next_steps": "..."
}}

Guidelines:
- lead_score: integer 1-10 (10 = ready to buy)
- sentiment.score: -1 to 1; sentiment.label: positive, neutral or negative"""

    def _get_email_prompt(self, analysis: Dict[str, Any], contact: Optional[Dict[str, Any]]) -> str:
        return f"""Generate a professional follow-up email based on this call analysis.

Contact: {describe_contact(contact, default="Prospect")}
Analysis: {json.dumps(analysis)}

Write a personalized, professional email that:
1. References specific points from our conversation
2. Provides the materials that were promised
3. Suggests next steps
4. Stays enthusiastic while professional

Return ONLY a JSON object: {{"subject": "...", "body": "..."}}"""

    async def _complete_json(self, prompt: str, temperature: float) -> Dict[str, Any]:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{
                "role": "system",
                "content": "You are an expert sales call analyst. Always answer with a single JSON object."
            }, {
                "role": "user",
                "content": prompt
            }],
            temperature=temperature,
            response_format={"type": "json_object"}
        )
        return extract_json(response.choices[0].message.content or "")

    async def analyze_call(self, transcript: str, contact: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Analyze a sales call transcript.

        Returns summary, lead_score, sentiment, key_info, action_items and
        next_steps. Falls back to sample analysis on any failure.
        """
        if not self.configured:
            logger.warning("OpenAI not configured, using fallback analysis")
            return self.fallback_analysis()

        try:
            raw = await self._complete_json(self._get_analysis_prompt(transcript, contact), temperature=0.3)
            return normalize_analysis(raw)
        except Exception as e:
            logger.error(f"Call analysis failed: {e}")
            return self.fallback_analysis()

    async def generate_follow_up_email(
        self,
        analysis: Dict[str, Any],
        contact: Optional[Dict[str, Any]] = None
    ) -> Dict[str, str]:
        """Draft a follow-up email; returns {"subject", "body"}."""
        if not self.configured:
            logger.warning("OpenAI not configured, using fallback email")
            return self.fallback_email(contact)

        try:
            result = await self._complete_json(self._get_email_prompt(analysis, contact), temperature=0.7)
            if not result.get("subject") or not result.get("body"):
                raise ValueError("Email reply missing subject or body")
            return {"subject": str(result["subject"]), "body": str(result["body"])}
        except Exception as e:
            logger.error(f"Email generation failed: {e}")
            return self.fallback_email(contact)

    @staticmethod
    def fallback_analysis() -> Dict[str, Any]:
        return copy.deepcopy(FALLBACK_ANALYSIS)

    @staticmethod
    def fallback_email(contact: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        name = (contact or {}).get("name") or "there"
        return {
            "subject": FALLBACK_EMAIL_SUBJECT,
            "body": FALLBACK_EMAIL_BODY.format(name=name),
        }


# Singleton
ai_service = AIService()
