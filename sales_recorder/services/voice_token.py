"""
Twilio Voice access-token issuance.

Tokens are HS256 JWTs carrying the "twilio-fpa;v=1" content type and a voice
grant scoped to one TwiML application. Minting is a pure computation: no
network call is needed until the browser SDK registers with the token.
"""
import enum
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from jose import JWTError, jwt

from sales_recorder.core.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

IDENTITY_MAX_LENGTH = 121
TOKEN_ALGORITHM = "HS256"
TOKEN_CONTENT_TYPE = "twilio-fpa;v=1"
DEFAULT_TTL = 3600
MAX_TTL = 86400
SID_LENGTH = 34

_IDENTITY_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_]")


def mask_secret(value: Optional[str], visible: int = 10) -> str:
    """Mask a credential for logs and diagnostics."""
    if not value:
        return "MISSING"
    return f"{value[:visible]}..."


def is_valid_sid(value: Optional[str], prefix: str) -> bool:
    """Twilio SIDs are a two-letter prefix followed by 32 hex characters."""
    return bool(value) and value.startswith(prefix) and len(value) == SID_LENGTH


def clean_identity(identity: str) -> str:
    """Strip characters the Voice SDK rejects and cap the length."""
    return _IDENTITY_INVALID_CHARS.sub("", identity)[:IDENTITY_MAX_LENGTH]


def default_identity(now: Optional[float] = None) -> str:
    now = time.time() if now is None else now
    return f"user{int(now * 1000)}"


def resolve_identity(identity: Any, now: Optional[float] = None) -> str:
    """
    Return the identity to embed in a token.

    An absent identity is generated from the clock. A supplied identity that
    has nothing left after cleaning is rejected.
    """
    if identity is None or identity == "":
        return default_identity(now)
    if not isinstance(identity, str):
        raise ValidationError(
            "Identity must be a string",
            details={"identity_type": type(identity).__name__},
        )

    cleaned = clean_identity(identity)
    if not cleaned:
        raise ValidationError(
            "Identity must contain at least one letter, digit or underscore",
            details={"identity": identity},
        )
    return cleaned


class SigningMethod(str, enum.Enum):
    """Which secret signs the token."""
    API_KEY = "api_key"
    AUTH_TOKEN = "auth_token"


@dataclass(frozen=True)
class VoiceCredentials:
    """
    Signing material for a voice token.

    With an API key the issuer is the key SID and the secret is the key
    secret. With the account auth token the issuer is the account SID itself.
    """
    account_sid: Optional[str]
    signing_key_sid: Optional[str]
    signing_secret: Optional[str] = field(repr=False)
    application_sid: Optional[str]
    method: SigningMethod = SigningMethod.API_KEY

    @classmethod
    def from_api_key(
        cls,
        account_sid: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        application_sid: Optional[str],
    ) -> "VoiceCredentials":
        return cls(account_sid, api_key, api_secret, application_sid, SigningMethod.API_KEY)

    @classmethod
    def from_auth_token(
        cls,
        account_sid: Optional[str],
        auth_token: Optional[str],
        application_sid: Optional[str],
    ) -> "VoiceCredentials":
        return cls(account_sid, account_sid, auth_token, application_sid, SigningMethod.AUTH_TOKEN)

    @classmethod
    def from_settings(cls, settings: Any, method: Optional[SigningMethod] = None) -> "VoiceCredentials":
        """
        Build credentials from application settings.
        Without an explicit method, an API key pair wins over the auth token.
        """
        if method is None:
            if settings.TWILIO_API_KEY and settings.TWILIO_API_SECRET:
                method = SigningMethod.API_KEY
            elif settings.TWILIO_AUTH_TOKEN:
                method = SigningMethod.AUTH_TOKEN
            else:
                method = SigningMethod.API_KEY

        if method == SigningMethod.AUTH_TOKEN:
            return cls.from_auth_token(
                settings.TWILIO_ACCOUNT_SID,
                settings.TWILIO_AUTH_TOKEN,
                settings.TWILIO_APP_SID,
            )
        return cls.from_api_key(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_API_KEY,
            settings.TWILIO_API_SECRET,
            settings.TWILIO_APP_SID,
        )

    def _field_names(self) -> Dict[str, str]:
        if self.method == SigningMethod.AUTH_TOKEN:
            return {
                "account_sid": "TWILIO_ACCOUNT_SID",
                "signing_key_sid": "TWILIO_ACCOUNT_SID",
                "signing_secret": "TWILIO_AUTH_TOKEN",
                "application_sid": "TWILIO_APP_SID",
            }
        return {
            "account_sid": "TWILIO_ACCOUNT_SID",
            "signing_key_sid": "TWILIO_API_KEY",
            "signing_secret": "TWILIO_API_SECRET",
            "application_sid": "TWILIO_APP_SID",
        }

    def problems(self) -> Tuple[List[str], List[str]]:
        """Return (missing, malformed) setting names."""
        names = self._field_names()
        missing: List[str] = []
        malformed: List[str] = []

        for attr, name in names.items():
            if not getattr(self, attr) and name not in missing:
                missing.append(name)

        if self.account_sid and not is_valid_sid(self.account_sid, "AC"):
            malformed.append(names["account_sid"])
        if self.method == SigningMethod.API_KEY and self.signing_key_sid \
                and not is_valid_sid(self.signing_key_sid, "SK"):
            malformed.append(names["signing_key_sid"])
        if self.application_sid and not is_valid_sid(self.application_sid, "AP"):
            malformed.append(names["application_sid"])

        return missing, malformed

    def validate(self) -> None:
        missing, malformed = self.problems()
        if missing or malformed:
            raise ConfigurationError(
                "Missing or invalid Twilio credentials",
                details={"method": self.method.value, "missing": missing, "malformed": malformed},
            )


@dataclass(frozen=True)
class VoiceToken:
    token: str
    identity: str
    ttl: int
    issued_at: int
    expires_at: int
    issuer: str
    method: SigningMethod


def build_voice_claims(
    credentials: VoiceCredentials,
    identity: str,
    ttl: int,
    issued_at: int,
) -> Dict[str, Any]:
    """Claim set for a token with an incoming + outgoing voice grant."""
    return {
        "jti": f"{credentials.signing_key_sid}-{issued_at}",
        "iss": credentials.signing_key_sid,
        "sub": credentials.account_sid,
        "iat": issued_at,
        "exp": issued_at + ttl,
        "grants": {
            "identity": identity,
            "voice": {
                "incoming": {"allow": True},
                "outgoing": {"application_sid": credentials.application_sid},
            },
        },
    }


def _validate_ttl(ttl: Any) -> int:
    if isinstance(ttl, bool) or not isinstance(ttl, int) or not 1 <= ttl <= MAX_TTL:
        raise ValidationError(
            f"ttl must be an integer between 1 and {MAX_TTL} seconds",
            details={"ttl": ttl},
        )
    return ttl


def issue_voice_token(
    credentials: VoiceCredentials,
    identity: Optional[str] = None,
    ttl: int = DEFAULT_TTL,
    now: Optional[float] = None,
) -> VoiceToken:
    """
    Mint a signed voice access token.

    Raises ConfigurationError for absent or malformed credentials and
    ValidationError for an unusable identity or ttl.
    """
    credentials.validate()
    ttl = _validate_ttl(ttl)

    now = time.time() if now is None else now
    resolved_identity = resolve_identity(identity, now)
    issued_at = int(now)

    claims = build_voice_claims(credentials, resolved_identity, ttl, issued_at)
    token = jwt.encode(
        claims,
        credentials.signing_secret,
        algorithm=TOKEN_ALGORITHM,
        headers={"cty": TOKEN_CONTENT_TYPE},
    )

    logger.info(
        f"Issued voice token for identity {resolved_identity} "
        f"(iss={mask_secret(credentials.signing_key_sid)}, method={credentials.method.value}, ttl={ttl})"
    )

    return VoiceToken(
        token=token,
        identity=resolved_identity,
        ttl=ttl,
        issued_at=issued_at,
        expires_at=issued_at + ttl,
        issuer=credentials.signing_key_sid,
        method=credentials.method,
    )


def decode_voice_token(token: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Read header and claims without checking the signature."""
    try:
        return jwt.get_unverified_header(token), jwt.get_unverified_claims(token)
    except JWTError as e:
        raise ValidationError(f"Malformed token: {str(e)}")


def verify_voice_token(token: str, secret: str, verify_exp: bool = True) -> Dict[str, Any]:
    """
    Check the HMAC signature (and by default the expiry) and return the claims.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[TOKEN_ALGORITHM],
            options={"verify_aud": False, "verify_exp": verify_exp},
        )
    except JWTError as e:
        raise ValidationError(f"Token verification failed: {str(e)}")


def inspect_voice_token(token: str, credentials: VoiceCredentials, now: Optional[float] = None) -> Dict[str, Any]:
    """
    Structural and signature checks on a token, one boolean per check.
    """
    now = time.time() if now is None else now
    header, claims = decode_voice_token(token)
    grants = claims.get("grants") or {}
    voice = grants.get("voice") or {}

    try:
        verify_voice_token(token, credentials.signing_secret, verify_exp=False)
        signature_valid = True
    except ValidationError:
        signature_valid = False

    checks = {
        "header_alg": header.get("alg") == TOKEN_ALGORITHM,
        "header_typ": header.get("typ") == "JWT",
        "header_cty": header.get("cty") == TOKEN_CONTENT_TYPE,
        "issuer": claims.get("iss") == credentials.signing_key_sid,
        "subject": claims.get("sub") == credentials.account_sid,
        "has_jti": bool(claims.get("jti")),
        "has_identity": bool(grants.get("identity")),
        "incoming_allowed": (voice.get("incoming") or {}).get("allow") is True,
        "application_sid": (voice.get("outgoing") or {}).get("application_sid") == credentials.application_sid,
        "signature_valid": signature_valid,
        "not_expired": isinstance(claims.get("exp"), int) and claims["exp"] > int(now),
    }
    return {
        "checks": checks,
        "all_valid": all(checks.values()),
        "identity": grants.get("identity"),
        "issued_at": claims.get("iat"),
        "expires_at": claims.get("exp"),
    }
