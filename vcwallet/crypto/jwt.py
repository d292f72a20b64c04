"""
Compact JWS (JWT-shaped) signing and verification of Verifiable Credentials.

A signed credential is `b64url(header).b64url(payload).b64url(signature)` where the
header is `{"alg": "EdDSA", "typ": "JWT"}` and the payload embeds the credential
under `vc` together with the `iat`, `iss` and `sub` registered claims (and `exp`
when the credential carries an expirationDate). The signature is Ed25519 over the
ASCII bytes of `header.payload`, so any JOSE library that understands EdDSA can
verify tokens issued here.
"""
import calendar
import time
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from vcwallet.crypto.encoding import (
    SegmentDecodeError,
    b64url_decode,
    b64url_encode,
    decode_json_segment,
    encode_json_segment,
)
from vcwallet.crypto.keys import SIGNING_ALGORITHM, KeyManager
from vcwallet.logging import get_logger
from vcwallet.models import VerifiableCredentialModel, VerificationResult
from vcwallet.utils import parse_datetime_utc

logger = get_logger(__name__)

TOKEN_TYPE = "JWT"
VC_CLAIM = "vc"
ANONYMOUS_SUBJECT = "anonymous"
ED25519_SIGNATURE_LENGTH = 64


def _epoch_seconds(dt: datetime) -> int:
    return calendar.timegm(dt.astimezone(UTC).utctimetuple())


class CredentialSigner:
    """Produces signed compact tokens for credential documents using the issuer key."""

    def __init__(self, key_manager: KeyManager, clock: Callable[[], float] = time.time):
        self.key_manager = key_manager
        self.clock = clock

    def build_payload(self, credential: VerifiableCredentialModel) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            VC_CLAIM: credential.to_json_dict(),
            "iat": int(self.clock()),
            "iss": self.key_manager.issuer_did(),
            "sub": credential.subject_id or ANONYMOUS_SUBJECT,
        }
        if credential.expirationDate:
            payload["exp"] = _epoch_seconds(parse_datetime_utc(credential.expirationDate))
        return payload

    def sign(self, credential: VerifiableCredentialModel) -> str:
        header = {"alg": SIGNING_ALGORITHM, "typ": TOKEN_TYPE}
        signing_input = f"{encode_json_segment(header)}.{encode_json_segment(self.build_payload(credential))}"
        signature = self.key_manager.sign(signing_input.encode("ascii"))
        token = f"{signing_input}.{b64url_encode(signature)}"
        logger.debug(f"Signed credential {credential.id}")
        return token


class CredentialVerifier:
    """Checks signed credential tokens against the issuer key.

    `verify()` never raises for bad input: malformed, forged or tampered tokens all
    produce a `VerificationResult` with `valid=False` and a reason in `error`.
    Only a missing issuer key (a startup failure) propagates as an exception.
    """

    def __init__(
        self,
        key_manager: KeyManager,
        enforce_expiration: bool = True,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.key_manager = key_manager
        self.enforce_expiration = enforce_expiration
        self.clock = clock

    def verify(self, token: Any) -> VerificationResult:
        expected_issuer = self.key_manager.issuer_did()
        try:
            return self._verify(token, expected_issuer)
        except Exception as e:
            # Input is untrusted; whatever slipped past the explicit checks is still a rejection.
            logger.warning(f"Unexpected error while verifying token: {type(e).__name__} - {e}")
            return VerificationResult.failure(f"Unexpected verification error: {type(e).__name__}")

    def _verify(self, token: Any, expected_issuer: str) -> VerificationResult:
        if not isinstance(token, str) or not token.strip():
            return VerificationResult.failure("Token must be a non-empty string")

        segments = token.strip().split(".")
        if len(segments) != 3:
            return VerificationResult.failure(f"Invalid compact JWS: expected 3 segments, got {len(segments)}")
        header_segment, payload_segment, signature_segment = segments

        try:
            header = decode_json_segment(header_segment)
        except SegmentDecodeError as e:
            return VerificationResult.failure(f"Invalid token header: {e}")
        if header.get("alg") != SIGNING_ALGORITHM:
            return VerificationResult.failure(f"Unsupported token algorithm: {header.get('alg')!r}")
        if "typ" in header and header["typ"] != TOKEN_TYPE:
            return VerificationResult.failure(f"Unsupported token type: {header['typ']!r}")

        try:
            signature = b64url_decode(signature_segment)
        except SegmentDecodeError as e:
            return VerificationResult.failure(f"Invalid token signature encoding: {e}")
        if len(signature) != ED25519_SIGNATURE_LENGTH:
            return VerificationResult.failure("Signature verification failed")

        signing_input = f"{header_segment}.{payload_segment}".encode("utf-8")
        if not self.key_manager.verify(signing_input, signature):
            return VerificationResult.failure("Signature verification failed")

        try:
            payload = decode_json_segment(payload_segment)
        except SegmentDecodeError as e:
            return VerificationResult.failure(f"Invalid token payload: {e}")

        issuer = payload.get("iss")
        if issuer != expected_issuer:
            return VerificationResult.failure(f"Unexpected token issuer: expected {expected_issuer}, got {issuer!r}")

        vc_data = payload.get(VC_CLAIM)
        if not isinstance(vc_data, dict):
            return VerificationResult.failure(f"Token payload is missing the '{VC_CLAIM}' claim")
        try:
            credential = VerifiableCredentialModel.model_validate(vc_data)
        except ValidationError as e:
            return VerificationResult.failure(f"Embedded credential is malformed: {e.error_count()} validation error(s)")

        if credential.issuer != expected_issuer:
            return VerificationResult.failure("Embedded credential issuer does not match the token issuer")

        if self.enforce_expiration:
            expired_error = self._check_expiration(payload, credential)
            if expired_error:
                return VerificationResult.failure(expired_error)

        return VerificationResult(valid=True, credential=credential)

    def _check_expiration(self, payload: Dict[str, Any], credential: VerifiableCredentialModel) -> Optional[str]:
        now = self.clock()
        exp = payload.get("exp")
        if exp is not None:
            if not isinstance(exp, (int, float)) or isinstance(exp, bool):
                return "Invalid 'exp' claim"
            if _epoch_seconds(now) >= exp:
                return "Credential has expired"
        if credential.expirationDate:
            try:
                expiration = parse_datetime_utc(credential.expirationDate)
            except ValueError:
                return "Invalid expirationDate in credential"
            if now >= expiration:
                return "Credential has expired"
        return None
