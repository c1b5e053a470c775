"""
Twilio helpers: TwiML builders and the credential diagnostic.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client
from twilio.twiml.voice_response import Dial, VoiceResponse

from sales_recorder.core.exceptions import AppException
from sales_recorder.services.voice_token import (
    SigningMethod,
    VoiceCredentials,
    inspect_voice_token,
    is_valid_sid,
    issue_voice_token,
    mask_secret,
)

logger = logging.getLogger(__name__)

RECORD_MODE = "record-from-answer-dual-channel"
CALL_ERROR_MESSAGE = "Sorry, there was an error processing your call."
DIAGNOSTIC_IDENTITY = "diagnostic_test"


def build_dial_twiml(to: str, caller_id: Optional[str], recording_callback_url: Optional[str]) -> str:
    """TwiML that dials `to` and records both legs from answer."""
    response = VoiceResponse()
    dial = Dial(
        caller_id=caller_id,
        record=RECORD_MODE,
        recording_status_callback=recording_callback_url,
    )
    dial.number(to)
    response.append(dial)
    return str(response)


def build_error_twiml(message: str = CALL_ERROR_MESSAGE) -> str:
    response = VoiceResponse()
    response.say(message)
    return str(response)


def credential_report(settings: Any) -> Dict[str, Any]:
    """Presence and format of every Twilio setting, secrets masked."""
    return {
        "account_sid": {
            "value": mask_secret(settings.TWILIO_ACCOUNT_SID),
            "present": bool(settings.TWILIO_ACCOUNT_SID),
            "valid_format": is_valid_sid(settings.TWILIO_ACCOUNT_SID, "AC"),
        },
        "api_key": {
            "value": mask_secret(settings.TWILIO_API_KEY),
            "present": bool(settings.TWILIO_API_KEY),
            "valid_format": is_valid_sid(settings.TWILIO_API_KEY, "SK"),
        },
        "api_secret": {
            "present": bool(settings.TWILIO_API_SECRET),
            "length": len(settings.TWILIO_API_SECRET or ""),
        },
        "auth_token": {
            "present": bool(settings.TWILIO_AUTH_TOKEN),
            "length": len(settings.TWILIO_AUTH_TOKEN or ""),
        },
        "app_sid": {
            "value": mask_secret(settings.TWILIO_APP_SID),
            "present": bool(settings.TWILIO_APP_SID),
            "valid_format": is_valid_sid(settings.TWILIO_APP_SID, "AP"),
        },
        "phone_number": {
            "value": settings.TWILIO_PHONE_NUMBER,
            "present": bool(settings.TWILIO_PHONE_NUMBER),
        },
    }


def configured_methods(settings: Any) -> List[SigningMethod]:
    methods = []
    if settings.TWILIO_API_KEY or settings.TWILIO_API_SECRET:
        methods.append(SigningMethod.API_KEY)
    if settings.TWILIO_AUTH_TOKEN:
        methods.append(SigningMethod.AUTH_TOKEN)
    return methods or [SigningMethod.API_KEY]


def token_check(credentials: VoiceCredentials, now: Optional[float] = None) -> Dict[str, Any]:
    """Mint a short-lived test token and inspect it."""
    try:
        token = issue_voice_token(credentials, identity=DIAGNOSTIC_IDENTITY, ttl=300, now=now)
        inspection = inspect_voice_token(token.token, credentials, now=now)
        return {
            "success": inspection["all_valid"],
            "issuer": mask_secret(token.issuer),
            "token_length": len(token.token),
            **inspection,
        }
    except AppException as e:
        return {"success": False, "error": e.message, "details": e.details}


class TwilioDiagnostics:
    """
    Collects everything needed to debug browser calling: local credential
    checks, test token minting and, optionally, live account lookups.
    """

    def __init__(self, settings: Any, client_factory: Callable[[str, str], Client] = Client):
        self.settings = settings
        self.client_factory = client_factory

    async def _fetch(self, label: str, fn: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(None, fn)
            return {"success": True, **result}
        except TwilioRestException as e:
            logger.warning(f"Twilio {label} check failed: {e.msg}")
            return {"success": False, "error": e.msg, "code": e.code, "status": e.status}
        except Exception as e:
            logger.warning(f"Twilio {label} check failed: {e}")
            return {"success": False, "error": str(e)}

    async def remote_checks(self) -> Dict[str, Any]:
        s = self.settings
        if not (s.TWILIO_ACCOUNT_SID and s.TWILIO_AUTH_TOKEN):
            return {"skipped": "TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN are required for remote checks"}

        client = self.client_factory(s.TWILIO_ACCOUNT_SID, s.TWILIO_AUTH_TOKEN)

        def fetch_account() -> Dict[str, Any]:
            account = client.api.accounts(s.TWILIO_ACCOUNT_SID).fetch()
            return {"friendly_name": account.friendly_name, "status": account.status, "type": account.type}

        def fetch_application() -> Dict[str, Any]:
            app = client.applications(s.TWILIO_APP_SID).fetch()
            return {
                "friendly_name": app.friendly_name,
                "voice_url": app.voice_url,
                "voice_method": app.voice_method,
                "status_callback": app.status_callback,
            }

        def fetch_api_key() -> Dict[str, Any]:
            key = client.keys(s.TWILIO_API_KEY).fetch()
            return {"friendly_name": key.friendly_name}

        checks = {"account": await self._fetch("account", fetch_account)}
        if s.TWILIO_APP_SID:
            checks["application"] = await self._fetch("application", fetch_application)
        if s.TWILIO_API_KEY:
            checks["api_key"] = await self._fetch("api key", fetch_api_key)
        return checks

    async def run(self, remote: bool = False, now: Optional[float] = None) -> Dict[str, Any]:
        now = time.time() if now is None else now
        tokens = {
            method.value: token_check(VoiceCredentials.from_settings(self.settings, method), now=now)
            for method in configured_methods(self.settings)
        }

        report: Dict[str, Any] = {
            "timestamp": int(now),
            "credentials": credential_report(self.settings),
            "tokens": tokens,
            "token_ready": any(result["success"] for result in tokens.values()),
        }
        if remote:
            report["remote"] = await self.remote_checks()

        logger.info(f"Twilio diagnostics complete (token_ready={report['token_ready']}, remote={remote})")
        return report
