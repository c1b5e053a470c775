import pytest
from jose import jwt

from sales_recorder.core.exceptions import ConfigurationError, ValidationError
from sales_recorder.services.voice_token import (
    IDENTITY_MAX_LENGTH,
    SigningMethod,
    VoiceCredentials,
    build_voice_claims,
    clean_identity,
    decode_voice_token,
    inspect_voice_token,
    issue_voice_token,
    resolve_identity,
    verify_voice_token,
)
from tests.conftest import ACCOUNT_SID, API_KEY, API_SECRET, APP_SID, AUTH_TOKEN, make_settings

NOW = 1700000000


@pytest.fixture
def credentials():
    return VoiceCredentials.from_api_key(ACCOUNT_SID, API_KEY, API_SECRET, APP_SID)


class TestIdentity:
    def test_strips_disallowed_characters(self):
        assert clean_identity("Sales Rep #1!!") == "SalesRep1"

    def test_keeps_underscores(self):
        assert clean_identity("agent_07") == "agent_07"

    def test_truncates(self):
        assert clean_identity("a" * 300) == "a" * IDENTITY_MAX_LENGTH

    def test_idempotent(self):
        once = clean_identity("Jo-Ann O'Neil (west) " * 10)
        assert clean_identity(once) == once

    def test_absent_identity_is_generated(self):
        assert resolve_identity(None, now=NOW) == f"user{NOW * 1000}"
        assert resolve_identity("", now=NOW) == f"user{NOW * 1000}"

    def test_identity_empty_after_cleaning_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_identity("!!! ###")

    def test_non_string_identity_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_identity(12345)


class TestCredentials:
    def test_api_key_preferred_from_settings(self):
        creds = VoiceCredentials.from_settings(make_settings())
        assert creds.method == SigningMethod.API_KEY
        assert creds.signing_key_sid == API_KEY

    def test_auth_token_used_without_key_pair(self):
        creds = VoiceCredentials.from_settings(make_settings(TWILIO_API_KEY=None, TWILIO_API_SECRET=None))
        assert creds.method == SigningMethod.AUTH_TOKEN
        assert creds.signing_key_sid == ACCOUNT_SID
        assert creds.signing_secret == AUTH_TOKEN

    def test_secret_not_in_repr(self, credentials):
        assert API_SECRET not in repr(credentials)

    def test_missing_values_reported(self):
        creds = VoiceCredentials.from_api_key(ACCOUNT_SID, None, None, APP_SID)
        with pytest.raises(ConfigurationError) as exc_info:
            creds.validate()
        assert exc_info.value.details["missing"] == ["TWILIO_API_KEY", "TWILIO_API_SECRET"]

    def test_malformed_sids_reported(self):
        creds = VoiceCredentials.from_api_key("AC123", "XX" + "2" * 32, API_SECRET, "AP1")
        missing, malformed = creds.problems()
        assert missing == []
        assert malformed == ["TWILIO_ACCOUNT_SID", "TWILIO_API_KEY", "TWILIO_APP_SID"]


class TestIssueToken:
    def test_claims(self, credentials):
        token = issue_voice_token(credentials, identity="Sales Rep #1!!", ttl=1800, now=NOW)
        claims = jwt.get_unverified_claims(token.token)

        assert claims["iss"] == API_KEY
        assert claims["sub"] == ACCOUNT_SID
        assert claims["iat"] == 1700000000
        assert claims["exp"] == 1700001800
        assert claims["jti"] == f"{API_KEY}-1700000000"
        assert claims["grants"]["identity"] == "SalesRep1"
        assert claims["grants"]["voice"]["incoming"] == {"allow": True}
        assert claims["grants"]["voice"]["outgoing"]["application_sid"] == APP_SID
        assert token.expires_at - token.issued_at == 1800

    def test_header(self, credentials):
        token = issue_voice_token(credentials, identity="rep", now=NOW)
        header, _ = decode_voice_token(token.token)
        assert header == {"alg": "HS256", "typ": "JWT", "cty": "twilio-fpa;v=1"}

    def test_signature_verifies_with_secret(self, credentials):
        token = issue_voice_token(credentials, identity="rep", ttl=60, now=NOW)
        claims = verify_voice_token(token.token, API_SECRET, verify_exp=False)
        assert claims["grants"]["identity"] == "rep"

        with pytest.raises(ValidationError):
            verify_voice_token(token.token, "wrong-secret", verify_exp=False)

    def test_expired_token_fails_verification(self, credentials):
        token = issue_voice_token(credentials, identity="rep", ttl=60, now=NOW)
        with pytest.raises(ValidationError):
            verify_voice_token(token.token, API_SECRET)

    def test_deterministic_for_same_inputs(self, credentials):
        first = issue_voice_token(credentials, identity="rep", ttl=600, now=NOW)
        second = issue_voice_token(credentials, identity="rep", ttl=600, now=NOW)
        assert first.token == second.token

    def test_auth_token_mode_signs_with_account(self):
        creds = VoiceCredentials.from_auth_token(ACCOUNT_SID, AUTH_TOKEN, APP_SID)
        token = issue_voice_token(creds, identity="rep", now=NOW)
        claims = verify_voice_token(token.token, AUTH_TOKEN, verify_exp=False)
        assert claims["iss"] == ACCOUNT_SID
        assert claims["sub"] == ACCOUNT_SID

    @pytest.mark.parametrize("ttl", [0, -5, 86401, "60", True, 1.5])
    def test_invalid_ttl_rejected(self, credentials, ttl):
        with pytest.raises(ValidationError):
            issue_voice_token(credentials, identity="rep", ttl=ttl, now=NOW)

    def test_missing_credentials_never_produce_token(self):
        creds = VoiceCredentials.from_api_key(ACCOUNT_SID, API_KEY, None, None)
        with pytest.raises(ConfigurationError) as exc_info:
            issue_voice_token(creds, identity="rep", now=NOW)
        assert "TWILIO_APP_SID" in exc_info.value.details["missing"]


def test_build_claims_exp_is_iat_plus_ttl(credentials):
    claims = build_voice_claims(credentials, "rep", 1800, 1700000000)
    assert claims["exp"] == 1700001800


def test_inspect_reports_every_check(credentials):
    token = issue_voice_token(credentials, identity="rep", ttl=300, now=NOW)

    report = inspect_voice_token(token.token, credentials, now=NOW + 10)
    assert report["all_valid"] is True
    assert report["identity"] == "rep"

    expired = inspect_voice_token(token.token, credentials, now=NOW + 301)
    assert expired["checks"]["not_expired"] is False
    assert expired["all_valid"] is False
