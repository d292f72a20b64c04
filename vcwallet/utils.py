import json
from datetime import UTC, datetime
from typing import Any, Dict, Iterable

import base58
from nacl.signing import VerifyKey

ED25519_MULTICODEC_PREFIX = bytes([0xed, 0x01])


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)

def format_timestamp(dt: datetime) -> str:
    """Formats a datetime as a UTC ISO-8601 string with millisecond precision and a 'Z' suffix."""
    return to_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def utc_now() -> datetime:
    return datetime.now(UTC)

def parse_datetime_utc(date_str: str) -> datetime:
    try:
        if date_str.endswith("Z"):
            dt = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        else:
            dt = datetime.fromisoformat(date_str)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Could not parse date string: {date_str}. Error: {e}")

def public_key_to_multibase(public_key: bytes) -> str:
    """Encodes a raw Ed25519 public key as multibase base58btc with the ed25519-pub multicodec prefix."""
    return "z" + base58.b58encode(ED25519_MULTICODEC_PREFIX + public_key).decode("ascii")

def get_verify_key_from_multibase(pk_multibase: str) -> VerifyKey:
    """Decodes a base58btc-encoded Ed25519 public key (multibase 'z' prefix)
    and returns a PyNaCl VerifyKey object.
    Handles the ed25519-pub multicodec prefix as well as raw 32-byte keys.
    """
    if not pk_multibase:
        raise ValueError("Public key multibase string cannot be empty.")
    if not pk_multibase.startswith('z'):
        raise ValueError(f"Ed25519 publicKeyMultibase '{pk_multibase}' must start with 'z'.")

    multicodec_pubkey = base58.b58decode(pk_multibase[1:]) # Skip 'z'

    if multicodec_pubkey.startswith(ED25519_MULTICODEC_PREFIX) and len(multicodec_pubkey) == 34:
        public_key_bytes = multicodec_pubkey[2:]
    elif len(multicodec_pubkey) == 32:
        public_key_bytes = multicodec_pubkey
    else:
        raise ValueError(f"Invalid Ed25519 multicodec prefix or key length in publicKeyMultibase '{pk_multibase}'. Decoded length: {len(multicodec_pubkey)} bytes.")

    return VerifyKey(public_key_bytes)

def parse_claim_options(claim_options: Iterable[str]) -> Dict[str, Any]:
    """Turns repeated `name=value` CLI options into a claims dict.

    Values that parse as JSON (numbers, booleans, objects) keep their JSON type,
    everything else is taken as a plain string.
    """
    claims: Dict[str, Any] = {}
    for option in claim_options:
        name, sep, raw_value = option.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Claim '{option}' must have the form name=value.")
        try:
            claims[name] = json.loads(raw_value)
        except json.JSONDecodeError:
            claims[name] = raw_value
    return claims
