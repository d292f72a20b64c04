import hashlib
import json
import os
import threading
from pathlib import Path
from typing import Dict, Optional

import base58
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import SigningKey, VerifyKey
from pydantic import ValidationError

from vcwallet.crypto.encoding import b64url_encode
from vcwallet.exceptions import KeyGenerationError, KeyManagerNotInitializedError
from vcwallet.logging import get_logger
from vcwallet.models import IssuerKeyFileModel
from vcwallet.utils import get_verify_key_from_multibase, public_key_to_multibase

logger = get_logger(__name__)

ISSUER_DID_PREFIX = "did:key:"
SIGNING_ALGORITHM = "EdDSA"
CURVE = "Ed25519"
KEY_FILE_MODE = 0o600


def jwk_thumbprint(jwk: Dict[str, str]) -> str:
    """RFC 7638 thumbprint (SHA-256, base64url) of an OKP JWK."""
    required = {name: jwk[name] for name in ("crv", "kty", "x")}
    canonical = json.dumps(required, separators=(",", ":"), sort_keys=True)
    return b64url_encode(hashlib.sha256(canonical.encode("utf-8")).digest())


class KeyManager:
    """Owns the issuer's Ed25519 keypair and the issuer DID derived from it.

    The keypair is created (or loaded from `key_file`) exactly once by `initialize()`.
    Concurrent callers of `initialize()` block until the first one has finished;
    every other accessor raises `KeyManagerNotInitializedError` until then.
    Signing and verification only read the key material and need no locking.
    """

    def __init__(self, key_file: Optional[Path] = None):
        self.key_file = Path(key_file) if key_file else None
        self._lock = threading.Lock()
        self._initialized = False
        self._signing_key: Optional[SigningKey] = None
        self._verify_key: Optional[VerifyKey] = None
        self._issuer_did: Optional[str] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            if self.key_file is not None and self.key_file.exists():
                signing_key = self._load_signing_key(self.key_file)
                source = f"key file {self.key_file}"
            else:
                signing_key = self._generate_signing_key()
                source = "freshly generated key"

            self._signing_key = signing_key
            self._verify_key = signing_key.verify_key
            self._issuer_did = ISSUER_DID_PREFIX + jwk_thumbprint(self._public_jwk())

            if self.key_file is not None and not self.key_file.exists():
                self._write_key_file(self.key_file)

            self._initialized = True
        logger.info(f"Key manager initialized with issuer DID {self._issuer_did} ({source})")

    @staticmethod
    def _generate_signing_key() -> SigningKey:
        try:
            return SigningKey.generate()
        except CryptoError as e:
            raise KeyGenerationError(f"Could not generate Ed25519 keypair: {e}")

    @staticmethod
    def _load_signing_key(key_file: Path) -> SigningKey:
        try:
            with open(key_file, 'r') as f:
                key_data = json.load(f)
            key_model = IssuerKeyFileModel(**key_data)
            signing_key = SigningKey(base58.b58decode(key_model.privateKeyMultibase))
            expected_verify_key = get_verify_key_from_multibase(key_model.publicKeyMultibase)
        except (OSError, json.JSONDecodeError, ValidationError, ValueError, TypeError, CryptoError) as e:
            raise KeyGenerationError(f"Could not load issuer key from {key_file}: {e}")

        if bytes(signing_key.verify_key) != bytes(expected_verify_key):
            raise KeyGenerationError(f"Issuer key file {key_file} has a public key that does not match its private key.")
        return signing_key

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise KeyManagerNotInitializedError("Key manager has not been initialized; call initialize() before signing or verifying.")

    def issuer_did(self) -> str:
        self._require_initialized()
        return self._issuer_did

    def public_key(self) -> bytes:
        """Raw 32-byte Ed25519 public key."""
        self._require_initialized()
        return bytes(self._verify_key)

    def public_jwk(self) -> Dict[str, str]:
        self._require_initialized()
        return self._public_jwk()

    def _public_jwk(self) -> Dict[str, str]:
        return {"crv": CURVE, "kty": "OKP", "x": b64url_encode(bytes(self._verify_key))}

    def sign(self, data: bytes) -> bytes:
        """Detached Ed25519 signature over `data`."""
        self._require_initialized()
        return self._signing_key.sign(data).signature

    def verify(self, data: bytes, signature: bytes) -> bool:
        self._require_initialized()
        try:
            self._verify_key.verify(data, signature)
        except (BadSignatureError, ValueError, TypeError):
            return False
        return True

    def to_key_file_data(self) -> Dict[str, str]:
        """Serializable form of the keypair, in the issuer key file layout."""
        self._require_initialized()
        return self._key_file_data()

    def _key_file_data(self) -> Dict[str, str]:
        public_key_multibase = public_key_to_multibase(bytes(self._verify_key))
        return {
            "did": self._issuer_did,
            "publicKeyMultibase": public_key_multibase,
            "privateKeyMultibase": base58.b58encode(bytes(self._signing_key)).decode("ascii"),
            "verificationMethod": f"{self._issuer_did}#{public_key_multibase}",
        }

    def save_key_file(self, key_file: Path) -> None:
        self._require_initialized()
        self._write_key_file(Path(key_file))

    def _write_key_file(self, key_file: Path) -> None:
        try:
            key_file.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(key_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, KEY_FILE_MODE)
            with os.fdopen(fd, 'w') as f:
                json.dump(self._key_file_data(), f, indent=2)
            # O_CREAT's mode only applies to new files
            key_file.chmod(KEY_FILE_MODE)
        except OSError as e:
            raise KeyGenerationError(f"Could not write issuer key file {key_file}: {e}")
        logger.info(f"Issuer key saved to {key_file}")
