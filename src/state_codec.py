"""
Shareable State Codec
Serializes the triage record list into a URL-safe string and back.

Format generations (newest first):
1. lz-string:     LZ-String compressed, URI-safe alphabet (current)
2. base64-utf8:   standard base64 of the UTF-8 JSON text (legacy)
3. base64-latin1: standard base64, one character per byte (oldest)

Encoding always emits the current format. Decoding walks the decoder list
in order and stops at the first strategy that yields a valid record list,
so links shared with any earlier version of the dashboard keep working.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from lzstring import LZString

from .triage_records import TriageRecord, records_from_payload, records_to_payload

logger = logging.getLogger(__name__)

_lz = LZString()

# Query parameter carrying the encoded dataset
SHARE_PARAM = "data"

FORMAT_LZ_STRING = "lz-string"
FORMAT_BASE64_UTF8 = "base64-utf8"
FORMAT_BASE64_LATIN1 = "base64-latin1"


@dataclass
class DecodeResult:
    """
    Outcome of a decode attempt.

    Attributes:
        ok: Whether a valid record list was extracted
        records: Decoded records (empty when not ok)
        format: Format generation that succeeded, or the one that failed
        error: Failure reason when not ok
    """
    ok: bool
    records: List[TriageRecord] = field(default_factory=list)
    format: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, records: List[TriageRecord], fmt: str) -> "DecodeResult":
        return cls(ok=True, records=records, format=fmt)

    @classmethod
    def failure(cls, error: str, fmt: Optional[str] = None) -> "DecodeResult":
        return cls(ok=False, format=fmt, error=error)


# =============================================================================
# ENCODING
# =============================================================================

def to_canonical_json(records: Sequence[TriageRecord]) -> str:
    """
    Canonical structured-text form of a record list.

    Compact separators and raw non-ASCII characters, identical to what a
    browser's JSON.stringify produces for the same list.
    """
    return json.dumps(records_to_payload(records), ensure_ascii=False, separators=(",", ":"))


def encode_records(records: Sequence[TriageRecord]) -> str:
    """
    Encode a record list into a URL-safe string (current format).
    """
    return _lz.compressToEncodedURIComponent(to_canonical_json(records))


# =============================================================================
# DECODING STRATEGIES
# =============================================================================

def _parse_payload(text: str, fmt: str) -> DecodeResult:
    try:
        payload = json.loads(text)
    except ValueError as e:
        return DecodeResult.failure(f"invalid JSON: {e}", fmt)
    try:
        records = records_from_payload(payload)
    except ValueError as e:
        return DecodeResult.failure(str(e), fmt)
    return DecodeResult.success(records, fmt)


def _b64_bytes(text: str) -> bytes:
    # Old links were produced by btoa; tolerate stripped padding
    compact = "".join(text.split())
    compact += "=" * (-len(compact) % 4)
    return base64.b64decode(compact, validate=True)


def decode_lz_string(text: str) -> DecodeResult:
    try:
        decompressed = _lz.decompressFromEncodedURIComponent(text)
    except Exception as e:
        # lzstring raises assorted KeyError/IndexError/TypeError on foreign input
        return DecodeResult.failure(f"decompression failed: {e!r}", FORMAT_LZ_STRING)
    if not decompressed:
        return DecodeResult.failure("decompression produced no data", FORMAT_LZ_STRING)
    return _parse_payload(decompressed, FORMAT_LZ_STRING)


def decode_base64_utf8(text: str) -> DecodeResult:
    try:
        decoded = _b64_bytes(text).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        return DecodeResult.failure(f"not UTF-8 base64: {e}", FORMAT_BASE64_UTF8)
    return _parse_payload(decoded, FORMAT_BASE64_UTF8)


def decode_base64_latin1(text: str) -> DecodeResult:
    try:
        decoded = _b64_bytes(text).decode("latin-1")
    except (binascii.Error, ValueError) as e:
        return DecodeResult.failure(f"not base64: {e}", FORMAT_BASE64_LATIN1)
    return _parse_payload(decoded, FORMAT_BASE64_LATIN1)


# Tried in order; the first success wins
DECODERS: List[Tuple[str, Callable[[str], DecodeResult]]] = [
    (FORMAT_LZ_STRING, decode_lz_string),
    (FORMAT_BASE64_UTF8, decode_base64_utf8),
    (FORMAT_BASE64_LATIN1, decode_base64_latin1),
]


def decode_records(text: Optional[str]) -> DecodeResult:
    """
    Decode a shared string into a record list.

    Never raises. A failed result carries the reason reported by each
    strategy that was tried.

    Examples:
        >>> decode_records("").ok
        False
        >>> decode_records("not-a-valid-token!!").ok
        False
    """
    if not isinstance(text, str) or not text.strip():
        return DecodeResult.failure("empty input")

    # Query strings turn '+' into ' '; the URI-safe alphabet has no spaces
    text = text.strip().replace(" ", "+")

    errors = []
    for name, decoder in DECODERS:
        result = decoder(text)
        if result.ok:
            return result
        errors.append(f"{name}: {result.error}")

    return DecodeResult.failure("; ".join(errors))


# =============================================================================
# URL HELPERS
# =============================================================================

def load_shared_records(
    params: Mapping[str, str],
    default: Sequence[TriageRecord],
) -> Tuple[List[TriageRecord], Optional[DecodeResult]]:
    """
    Read the dataset from query parameters, falling back to a default.

    Returns:
        Tuple of (records, decode result). The result is None when the
        parameter was absent.
    """
    raw = params.get(SHARE_PARAM)
    if not raw:
        return list(default), None

    result = decode_records(raw)
    if result.ok:
        logger.info(f"Loaded {len(result.records)} shared records ({result.format})")
        return result.records, result

    logger.warning(f"Shared data could not be decoded, using default dataset: {result.error}")
    return list(default), result


def build_share_url(base_url: str, records: Sequence[TriageRecord]) -> str:
    """
    Build a link that reproduces the current dataset.

    Existing query parameters are kept; `data` is replaced.
    """
    parts = urlsplit(base_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != SHARE_PARAM]
    query.append((SHARE_PARAM, encode_records(records)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(query), parts.fragment))
