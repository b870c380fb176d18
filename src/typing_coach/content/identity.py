"""Content-addressed identity for (language, normalized code) pairs."""

import hashlib

from typing_coach.content.normalizer import normalize

CONTENT_ID_LENGTH = 32


def content_id(language: str, normalized_code: str) -> str:
    """Deterministic id for a piece of practice code.

    Identical (language, code) pairs always hash to the same id regardless
    of where the code came from. 128 bits of SHA-256 keeps collisions
    negligible for libraries of tens of thousands of items.
    """
    payload = f"{language.strip().lower()}\0{normalized_code}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()[:CONTENT_ID_LENGTH]


def content_id_for_raw(language: str, code: str) -> str:
    """Normalize then hash."""
    return content_id(language, normalize(code))
