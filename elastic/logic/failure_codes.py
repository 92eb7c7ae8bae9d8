"""
============================================================================
Elastic Supply v1.0.0
Failure Classification - Downstream Failure Codes
============================================================================

Reliability Level: L6 Critical
Input Constraints: Raw failure payload bytes from a downstream call
Side Effects: None (pure functions)

A failure code is the SHA3-256 hex digest of the normalized failure message.
Classification is purely a function of the raw failure payload:

    len(raw) == 0    -> OUT_OF_BUDGET sentinel ("out of budget")
    len(raw) < 68    -> SILENT_FAILURE sentinel ("silent failure")
    otherwise        -> decode the structured reason, hash its text

Structured reason layout (68 bytes minimum):

    [0:4]    selector 0x08c379a0
    [4:36]   offset of the string, big-endian (0x20)
    [36:68]  length of the string, big-endian
    [68:]    UTF-8 text, zero padded to a 32-byte boundary

A payload that is long enough but does not decode is classified as a silent
failure.

============================================================================
"""

from typing import Tuple
import hashlib

# =============================================================================
# Constants
# =============================================================================

REASON_SELECTOR = bytes.fromhex("08c379a0")
WORD_SIZE = 32
STRUCTURED_REASON_MIN_LENGTH = len(REASON_SELECTOR) + 2 * WORD_SIZE  # 68

OUT_OF_BUDGET_MESSAGE = "out of budget"
SILENT_FAILURE_MESSAGE = "silent failure"


def normalize_message(message: str) -> str:
    """Normalization applied before hashing: surrounding whitespace stripped."""
    return message.strip()


def failure_code(message: str) -> str:
    """Derive the failure code for a failure message."""
    return hashlib.sha3_256(normalize_message(message).encode("utf-8")).hexdigest()


OUT_OF_BUDGET = failure_code(OUT_OF_BUDGET_MESSAGE)
SILENT_FAILURE = failure_code(SILENT_FAILURE_MESSAGE)


# =============================================================================
# Structured reason codec
# =============================================================================

def encode_failure_reason(message: str) -> bytes:
    """Build the structured failure payload carrying `message`."""
    text = message.encode("utf-8")
    padding = (-len(text)) % WORD_SIZE
    return (
        REASON_SELECTOR
        + WORD_SIZE.to_bytes(WORD_SIZE, "big")
        + len(text).to_bytes(WORD_SIZE, "big")
        + text
        + b"\x00" * padding
    )


def decode_failure_reason(raw: bytes) -> str:
    """
    Decode a structured failure payload.

    Raises:
        ValueError: If raw is not a well-formed structured reason
    """
    if len(raw) < STRUCTURED_REASON_MIN_LENGTH:
        raise ValueError(f"payload of {len(raw)} bytes is shorter than a structured reason")
    body = raw[len(REASON_SELECTOR):]
    offset = int.from_bytes(body[0:WORD_SIZE], "big")
    if offset + WORD_SIZE > len(body):
        raise ValueError(f"string offset {offset} outside payload")
    length = int.from_bytes(body[offset:offset + WORD_SIZE], "big")
    start = offset + WORD_SIZE
    if start + length > len(body):
        raise ValueError(f"string length {length} outside payload")
    return body[start:start + length].decode("utf-8")


def classify_failure(raw: bytes) -> Tuple[str, str]:
    """
    Map a raw failure payload to (failure_code, message).

    Example:
        >>> classify_failure(b"")[1]
        'out of budget'
    """
    if len(raw) == 0:
        return OUT_OF_BUDGET, OUT_OF_BUDGET_MESSAGE
    if len(raw) < STRUCTURED_REASON_MIN_LENGTH:
        return SILENT_FAILURE, SILENT_FAILURE_MESSAGE
    try:
        message = decode_failure_reason(raw)
    except (ValueError, UnicodeDecodeError):
        return SILENT_FAILURE, SILENT_FAILURE_MESSAGE
    return failure_code(message), normalize_message(message)
