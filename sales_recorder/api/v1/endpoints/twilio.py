"""
Twilio endpoints: browser voice tokens, TwiML, webhooks and diagnostics
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError as PydanticValidationError

from sales_recorder.api.dependencies import (
    get_conference_recorder,
    get_settings,
    get_twilio_diagnostics,
    get_voice_credentials,
)
from sales_recorder.core.exceptions import ValidationError
from sales_recorder.schemas import RecordingCallbackResponse, VoiceTokenRequest, VoiceTokenResponse
from sales_recorder.services.conference_recorder import ConferenceCallRecorder
from sales_recorder.services.twilio_service import TwilioDiagnostics, build_dial_twiml, build_error_twiml
from sales_recorder.services.voice_token import VoiceCredentials, issue_voice_token

logger = logging.getLogger(__name__)
router = APIRouter()

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
}
XML_MEDIA_TYPE = "application/xml"


async def _json_body(request: Request) -> Dict[str, Any]:
    if "application/json" not in request.headers.get("content-type", ""):
        return {}
    body = await request.body()
    if not body:
        return {}
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError("Request body is not valid JSON")
    return data if isinstance(data, dict) else {}


def _parse_ttl(raw: Any, default: int) -> Any:
    if raw is None or raw == "":
        return default
    if isinstance(raw, str):
        try:
            return int(raw)
        except ValueError:
            raise ValidationError("ttl must be an integer", details={"ttl": raw})
    return raw


def _parse_int(raw: Optional[str]) -> Optional[int]:
    try:
        return int(raw) if raw else None
    except ValueError:
        return None


@router.api_route("/token", methods=["GET", "POST"], response_model=VoiceTokenResponse)
async def voice_token(
    request: Request,
    credentials: VoiceCredentials = Depends(get_voice_credentials),
    app_settings=Depends(get_settings),
):
    """
    Mint a Voice SDK access token.

    Identity and ttl come from the query string or a JSON body. Missing or
    malformed credentials produce an error response, never a token.
    """
    body = await _json_body(request) if request.method == "POST" else {}
    try:
        token_request = VoiceTokenRequest(**body)
    except PydanticValidationError as e:
        errors = [f"{err['loc'][0]}: {err['msg']}" for err in e.errors()]
        raise ValidationError("Invalid token request", details={"errors": errors})

    identity = request.query_params.get("identity") or token_request.identity
    ttl = _parse_ttl(
        request.query_params.get("ttl", token_request.ttl),
        app_settings.VOICE_TOKEN_TTL,
    )

    token = issue_voice_token(credentials, identity=identity, ttl=ttl)
    payload = VoiceTokenResponse(
        token=token.token,
        identity=token.identity,
        ttl=token.ttl,
        issued_at=token.issued_at,
        expires_at=token.expires_at,
        method=token.method.value,
    )
    return JSONResponse(content=payload.dict(), headers=NO_STORE_HEADERS)


@router.post("/voice")
async def voice_twiml(request: Request, app_settings=Depends(get_settings)):
    """
    TwiML for an outgoing browser call: dial `To` and record both channels.
    """
    form = await request.form()
    to = form.get("To")

    if not to:
        logger.warning("Voice webhook called without a To number")
        return Response(content=build_error_twiml(), media_type=XML_MEDIA_TYPE, status_code=status.HTTP_400_BAD_REQUEST)

    try:
        callback_url = app_settings.RECORDING_CALLBACK_URL or str(request.url_for("recording_callback"))
        twiml = build_dial_twiml(str(to), app_settings.TWILIO_PHONE_NUMBER, callback_url)
    except Exception as e:
        logger.error(f"Error handling voice webhook: {str(e)}", exc_info=True)
        return Response(
            content=build_error_twiml(),
            media_type=XML_MEDIA_TYPE,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    logger.info(f"Dialing {to} with dual-channel recording")
    return Response(content=twiml, media_type=XML_MEDIA_TYPE)


@router.post("/webhook", response_class=PlainTextResponse)
async def twilio_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    recorder: ConferenceCallRecorder = Depends(get_conference_recorder),
):
    """
    Conference status callback. Always acknowledged with 200 OK; AI
    processing of a completed recording runs after the response.
    """
    form = await request.form()
    try:
        processing = await recorder.handle_twilio_webhook(form)
        if processing:
            background_tasks.add_task(
                recorder.process_call_with_ai,
                processing["call_id"],
                processing["audio_url"],
                processing["contact_id"],
            )
    except Exception as e:
        logger.error(f"Error processing Twilio webhook: {str(e)}", exc_info=True)

    return PlainTextResponse("OK", status_code=status.HTTP_200_OK)


@router.post("/recording-callback", name="recording_callback", response_model=RecordingCallbackResponse)
async def recording_callback(
    request: Request,
    background_tasks: BackgroundTasks,
    recorder: ConferenceCallRecorder = Depends(get_conference_recorder),
):
    """
    Recording status callback for browser Voice SDK calls.
    """
    form = await request.form()
    call_sid = form.get("CallSid")
    recording_url = form.get("RecordingUrl")
    recording_sid = form.get("RecordingSid")

    logger.info(f"Recording completed: CallSid={call_sid} RecordingSid={recording_sid}")

    if not recording_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="RecordingUrl is required"
        )

    try:
        processing = await recorder.record_voice_call(
            call_sid,
            str(recording_url),
            duration=_parse_int(form.get("RecordingDuration")),
        )
    except Exception as e:
        logger.error(f"Recording callback error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process recording callback"
        )

    background_tasks.add_task(
        recorder.process_call_with_ai,
        processing["call_id"],
        processing["audio_url"],
        processing["contact_id"],
    )
    return RecordingCallbackResponse(call_id=processing["call_id"])


@router.get("/diagnostics")
async def twilio_diagnostics(
    remote: bool = Query(False, description="Also query the Twilio REST API"),
    diagnostics: TwilioDiagnostics = Depends(get_twilio_diagnostics),
):
    """
    Credential, token and (optionally) account diagnostics for browser calling.
    """
    report = await diagnostics.run(remote=remote)
    return JSONResponse(content=report, headers=NO_STORE_HEADERS)
