import asyncio
import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from sales_recorder.services.ai_service import (
    FALLBACK_ANALYSIS,
    FALLBACK_EMAIL_SUBJECT,
    AIService,
    extract_json,
    normalize_analysis,
)
from sales_recorder.services.transcription_service import FALLBACK_TRANSCRIPT, TranscriptionService


def completion(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def service_with_reply(content):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion(content))
    return AIService(client=client), client


def whisper_client(text):
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock(return_value=MagicMock(text=text))
    return client


def mock_downloads(handler):
    """Route the service's httpx downloads through a MockTransport."""
    real_client = httpx.AsyncClient
    return patch(
        "sales_recorder.services.transcription_service.httpx.AsyncClient",
        side_effect=lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )


class TestExtractJson:
    def test_plain(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced(self):
        assert extract_json('Here you go:\n```json\n{"a": 1}\n```') == {"a": 1}

    def test_rejects_non_object(self):
        with pytest.raises(ValueError):
            extract_json("[1, 2]")


class TestNormalizeAnalysis:
    def test_clamps_lead_score(self):
        assert normalize_analysis({"lead_score": 14})["lead_score"] == 10
        assert normalize_analysis({"lead_score": 0})["lead_score"] == 1
        assert normalize_analysis({"lead_score": "6.6"})["lead_score"] == 7

    def test_missing_sentiment_is_neutral(self):
        result = normalize_analysis({"lead_score": 5})
        assert result["sentiment"] == {"score": 0.0, "label": "neutral"}

    def test_accepts_camel_case(self):
        result = normalize_analysis({
            "leadScore": 8,
            "keyInfo": {"budget": "$5k", "decisionMakers": "CEO"},
            "actionItems": ["Call back", {"task": "Send deck", "priority": "high", "dueDate": "Monday"}],
            "nextSteps": "Follow up",
        })
        assert result["key_info"] == {"budget": "$5k", "decision_makers": "CEO"}
        assert result["action_items"] == [
            {"task": "Call back", "priority": "medium", "due_date": None},
            {"task": "Send deck", "priority": "high", "due_date": "Monday"},
        ]
        assert result["next_steps"] == "Follow up"

    def test_action_item_fields_become_strings(self):
        result = normalize_analysis({
            "lead_score": 5,
            "action_items": [{"task": 42, "priority": 1, "due_date": 3}, {"task": "Book", "due_date": {"day": "Mon"}}],
        })
        assert result["action_items"] == [
            {"task": "42", "priority": "1", "due_date": "3"},
            {"task": "Book", "priority": "medium", "due_date": '{"day": "Mon"}'},
        ]

    def test_invalid_lead_score_raises(self):
        with pytest.raises(ValueError):
            normalize_analysis({"lead_score": "very good"})


class TestAnalyzeCall:
    def test_uses_model_reply(self):
        reply = {
            "summary": "Good call",
            "lead_score": 9,
            "sentiment": {"score": 0.9, "label": "positive"},
            "key_info": {"budget": "$1k"},
            "action_items": [],
            "next_steps": "Demo",
        }
        service, client = service_with_reply(json.dumps(reply))

        result = asyncio.run(service.analyze_call("transcript", {"name": "Ann", "company": "Acme"}))

        assert result["summary"] == "Good call"
        assert result["lead_score"] == 9
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "Ann from Acme" in kwargs["messages"][1]["content"]

    def test_falls_back_on_unparsable_reply(self):
        service, _ = service_with_reply("not json at all")
        assert asyncio.run(service.analyze_call("transcript")) == FALLBACK_ANALYSIS

    def test_falls_back_on_api_error(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("rate limited"))
        service = AIService(client=client)
        assert asyncio.run(service.analyze_call("transcript")) == FALLBACK_ANALYSIS

    def test_falls_back_without_client(self, offline_ai):
        result = asyncio.run(offline_ai.analyze_call("transcript"))
        assert result == FALLBACK_ANALYSIS
        result["lead_score"] = 1
        assert FALLBACK_ANALYSIS["lead_score"] == 8


class TestFollowUpEmail:
    def test_uses_model_reply(self):
        service, _ = service_with_reply('{"subject": "Thanks", "body": "Hi Ann"}')
        email = asyncio.run(service.generate_follow_up_email({}, {"name": "Ann"}))
        assert email == {"subject": "Thanks", "body": "Hi Ann"}

    def test_fallback_is_personalized(self, offline_ai):
        email = asyncio.run(offline_ai.generate_follow_up_email({}, {"name": "Ann"}))
        assert email["subject"] == FALLBACK_EMAIL_SUBJECT
        assert email["body"].startswith("Hi Ann,")

    def test_fallback_without_contact(self, offline_ai):
        email = asyncio.run(offline_ai.generate_follow_up_email({}))
        assert email["body"].startswith("Hi there,")

    def test_incomplete_reply_falls_back(self):
        service, _ = service_with_reply('{"subject": "Thanks"}')
        email = asyncio.run(service.generate_follow_up_email({}, None))
        assert email["subject"] == FALLBACK_EMAIL_SUBJECT


class TestTranscription:
    def test_local_file_is_sent_to_whisper(self, tmp_path):
        audio = tmp_path / "call.webm"
        audio.write_bytes(b"audio-bytes")
        client = MagicMock()
        client.audio.transcriptions.create = AsyncMock(return_value=MagicMock(text=" hello there "))
        service = TranscriptionService(client=client)

        assert asyncio.run(service.transcribe(str(audio))) == "hello there"
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["file"] == ("call.webm", b"audio-bytes")

    def test_missing_file_falls_back(self, tmp_path):
        client = MagicMock()
        client.audio.transcriptions.create = AsyncMock()
        service = TranscriptionService(client=client)

        assert asyncio.run(service.transcribe(str(tmp_path / "absent.wav"))) == FALLBACK_TRANSCRIPT
        client.audio.transcriptions.create.assert_not_called()

    def test_twilio_recording_is_downloaded_with_basic_auth(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"wav-bytes")

        client = whisper_client("from twilio")
        service = TranscriptionService(client=client, account_sid="ACtest", auth_token="secret")

        with mock_downloads(handler):
            text = asyncio.run(service.transcribe("https://api.twilio.com/2010-04-01/Recordings/RE1"))

        assert text == "from twilio"
        expected = "Basic " + base64.b64encode(b"ACtest:secret").decode()
        assert seen[0].headers["authorization"] == expected
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["file"] == ("RE1.wav", b"wav-bytes")

    def test_other_hosts_get_no_credentials(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"mp3-bytes")

        client = whisper_client("elsewhere")
        service = TranscriptionService(client=client, account_sid="ACtest", auth_token="secret")

        with mock_downloads(handler):
            text = asyncio.run(service.transcribe("https://files.example.com/rec.mp3"))

        assert text == "elsewhere"
        assert "authorization" not in seen[0].headers
        assert client.audio.transcriptions.create.call_args.kwargs["file"] == ("rec.mp3", b"mp3-bytes")

    def test_failed_download_falls_back(self):
        client = whisper_client("unused")
        service = TranscriptionService(client=client, account_sid="ACtest", auth_token="secret")

        with mock_downloads(lambda request: httpx.Response(404)):
            text = asyncio.run(service.transcribe("https://api.twilio.com/2010-04-01/Recordings/RE404"))

        assert text == FALLBACK_TRANSCRIPT
        client.audio.transcriptions.create.assert_not_called()

    def test_no_client_falls_back(self, tmp_path):
        service = TranscriptionService()
        service.client = None
        assert asyncio.run(service.transcribe("anything.wav")) == FALLBACK_TRANSCRIPT
