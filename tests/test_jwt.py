from datetime import UTC, datetime, timedelta

import pytest

from conftest import sign_raw
from vcwallet.crypto.encoding import decode_json_segment
from vcwallet.crypto.jwt import CredentialSigner, CredentialVerifier
from vcwallet.crypto.keys import KeyManager
from vcwallet.exceptions import KeyManagerNotInitializedError
from vcwallet.models import VerifiableCredentialModel


@pytest.fixture
def credential(builder):
    return builder.build("GymMembership", {"memberName": "John Doe", "membershipType": "Premium"})

@pytest.fixture
def token(signer, credential):
    return signer.sign(credential)


def _mutate(token: str, index: int) -> str:
    replacement = "A" if token[index] != "A" else "B"
    return token[:index] + replacement + token[index + 1:]


def test_token_has_jwt_shape(token, credential, key_manager):
    segments = token.split(".")
    assert len(segments) == 3

    assert decode_json_segment(segments[0]) == {"alg": "EdDSA", "typ": "JWT"}
    payload = decode_json_segment(segments[1])
    assert set(payload) == {"vc", "iat", "iss", "sub"}
    assert payload["vc"] == credential.to_json_dict()
    assert payload["iss"] == key_manager.issuer_did()
    assert payload["sub"] == credential.subject_id
    assert isinstance(payload["iat"], int)


def test_sign_then_verify_round_trip(token, verifier, credential):
    result = verifier.verify(token)

    assert result.valid is True
    assert result.error is None
    assert result.credential.to_json_dict() == credential.to_json_dict()
    assert result.credential.credentialSubject == {
        "id": credential.subject_id,
        "memberName": "John Doe",
        "membershipType": "Premium",
    }


def test_subject_falls_back_to_anonymous(signer, key_manager):
    credential = VerifiableCredentialModel(
        context=["https://www.w3.org/2018/credentials/v1"],
        id="urn:uuid:test",
        type=["VerifiableCredential"],
        issuer=key_manager.issuer_did(),
        issuanceDate="2024-01-01T00:00:00.000Z",
        credentialSubject={"name": "Test"},
    )
    payload = decode_json_segment(signer.sign(credential).split(".")[1])
    assert payload["sub"] == "anonymous"


def test_signer_uses_injected_clock(key_manager, credential):
    token = CredentialSigner(key_manager, clock=lambda: 1700000000.9).sign(credential)
    assert decode_json_segment(token.split(".")[1])["iat"] == 1700000000


def test_every_signature_character_flip_is_rejected(token, verifier):
    header_len = len(token.split(".")[0]) + 1
    payload_len = len(token.split(".")[1]) + 1
    signature_start = header_len + payload_len
    for index in range(signature_start, len(token)):
        result = verifier.verify(_mutate(token, index))
        assert result.valid is False, f"mutation at signature index {index - signature_start} was accepted"
        assert result.error


def test_any_single_character_mutation_is_rejected(token, verifier):
    for index in range(len(token)):
        result = verifier.verify(_mutate(token, index))
        assert result.valid is False, f"mutation at index {index} was accepted"


def test_tampered_tail_is_rejected(token, verifier):
    result = verifier.verify(token[:-5] + "xxxxx")
    assert result.valid is False
    assert result.error


def test_not_a_jwt(verifier):
    result = verifier.verify("not.a.jwt")
    assert result.valid is False
    assert isinstance(result.error, str) and result.error
    assert result.credential is None


@pytest.mark.parametrize(
    "bad_token",
    ["", "   ", "abc", "a.b", "a.b.c.d", "..", "...", "ä.ö.ü", None, 42, b"a.b.c", {"jwt": "a.b.c"}],
)
def test_malformed_input_never_raises(verifier, bad_token):
    result = verifier.verify(bad_token)
    assert result.valid is False
    assert result.error


def test_token_from_another_issuer_is_rejected(credential, verifier):
    other = KeyManager()
    other.initialize()
    result = verifier.verify(CredentialSigner(other).sign(credential))
    assert result.valid is False
    assert "Signature verification failed" in result.error


def test_issuer_claim_must_match(key_manager, verifier, credential):
    token = sign_raw(
        key_manager,
        {"alg": "EdDSA", "typ": "JWT"},
        {"vc": credential.to_json_dict(), "iat": 1, "iss": "did:key:someone-else", "sub": "x"},
    )
    result = verifier.verify(token)
    assert result.valid is False
    assert "issuer" in result.error


def test_unsupported_algorithm_is_rejected(key_manager, verifier, credential):
    payload = {"vc": credential.to_json_dict(), "iat": 1, "iss": key_manager.issuer_did(), "sub": "x"}
    result = verifier.verify(sign_raw(key_manager, {"alg": "none", "typ": "JWT"}, payload))
    assert result.valid is False
    assert "algorithm" in result.error


def test_missing_or_malformed_vc_claim_is_rejected(key_manager, verifier):
    base = {"iat": 1, "iss": key_manager.issuer_did(), "sub": "x"}
    header = {"alg": "EdDSA", "typ": "JWT"}

    missing = verifier.verify(sign_raw(key_manager, header, base))
    assert missing.valid is False
    assert "'vc'" in missing.error

    malformed = verifier.verify(sign_raw(key_manager, header, {**base, "vc": {"id": "urn:uuid:x"}}))
    assert malformed.valid is False
    assert "malformed" in malformed.error


def _expired_credential(key_manager):
    return VerifiableCredentialModel(
        context=["https://www.w3.org/2018/credentials/v1"],
        id="urn:uuid:expired",
        type=["VerifiableCredential", "GymMembershipCredential"],
        issuer=key_manager.issuer_did(),
        issuanceDate="2020-01-01T00:00:00.000Z",
        expirationDate="2021-01-01T00:00:00.000Z",
        credentialSubject={"id": "did:example:1234abcd", "memberName": "John Doe"},
    )


def test_expired_credential_is_rejected(key_manager, signer, verifier):
    token = signer.sign(_expired_credential(key_manager))
    payload = decode_json_segment(token.split(".")[1])
    assert payload["exp"] == 1609459200

    result = verifier.verify(token)
    assert result.valid is False
    assert result.error == "Credential has expired"


def test_expiration_can_be_left_unenforced(key_manager, signer):
    token = signer.sign(_expired_credential(key_manager))
    result = CredentialVerifier(key_manager, enforce_expiration=False).verify(token)
    assert result.valid is True


def test_unexpired_credential_is_accepted(builder, signer, verifier):
    credential = builder.build("Pass", {"zone": "A"}, expiration_date=datetime.now(UTC) + timedelta(days=30))
    assert verifier.verify(signer.sign(credential)).valid is True


def test_verifier_clock_decides_expiry(builder, signer, key_manager):
    credential = builder.build("Pass", {"zone": "A"}, expiration_date=datetime.now(UTC) + timedelta(days=1))
    token = signer.sign(credential)
    later = CredentialVerifier(key_manager, clock=lambda: datetime.now(UTC) + timedelta(days=2))
    assert later.verify(token).error == "Credential has expired"


def test_uninitialized_key_manager_is_fatal(token):
    with pytest.raises(KeyManagerNotInitializedError):
        CredentialVerifier(KeyManager()).verify(token)
    with pytest.raises(KeyManagerNotInitializedError):
        CredentialSigner(KeyManager()).sign(
            VerifiableCredentialModel(
                context=[], id="x", type=[], issuer="x", issuanceDate="x", credentialSubject={}
            )
        )
