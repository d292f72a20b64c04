import base64
import binascii
import json
from typing import Any, Dict


class SegmentDecodeError(ValueError):
    """Raised when a compact token segment is not canonical base64url or not a JSON object."""


def b64url_encode(data: bytes) -> str:
    """Unpadded base64url, as used by every JWS compact segment."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")

def b64url_decode(segment: str) -> bytes:
    """Decodes an unpadded base64url segment.

    Only the canonical encoding of a byte string is accepted: stray characters,
    padding, or non-zero trailing bits are rejected, so two different segments
    never decode to the same bytes.
    """
    if not isinstance(segment, str) or not segment:
        raise SegmentDecodeError("Segment is empty.")
    try:
        raw = segment.encode("ascii")
        padded = raw + b"=" * (-len(raw) % 4)
        data = base64.urlsafe_b64decode(padded)
    except (UnicodeEncodeError, binascii.Error, ValueError) as e:
        raise SegmentDecodeError(f"Segment is not valid base64url: {e}")
    if b64url_encode(data) != segment:
        raise SegmentDecodeError("Segment is not canonical base64url.")
    return data

def encode_json_segment(obj: Dict[str, Any]) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))

def decode_json_segment(segment: str) -> Dict[str, Any]:
    data = b64url_decode(segment)
    try:
        obj = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SegmentDecodeError(f"Segment is not valid JSON: {e}")
    if not isinstance(obj, dict):
        raise SegmentDecodeError("Segment does not contain a JSON object.")
    return obj
