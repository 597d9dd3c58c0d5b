"""PKCE verifier and S256 challenge helpers (RFC 7636)."""

from __future__ import annotations

import hashlib
import secrets
import string
from base64 import urlsafe_b64encode

from core.errors import CryptoUnavailableError, ValidationError
from core.models import PkcePair

# Subset of the RFC 7636 unreserved set; ``-._~`` are not needed.
ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128


def generate_verifier(length: int = MAX_VERIFIER_LENGTH) -> str:
    """Random verifier of *length* characters drawn from ``[A-Za-z0-9]``.

    One secure random byte per character, mapped with ``byte % 62``.
    """
    if not MIN_VERIFIER_LENGTH <= length <= MAX_VERIFIER_LENGTH:
        raise ValidationError(
            f"Verifier length must be {MIN_VERIFIER_LENGTH}-{MAX_VERIFIER_LENGTH}, got {length}"
        )
    try:
        raw = secrets.token_bytes(length)
    except NotImplementedError as exc:
        raise CryptoUnavailableError("No secure random source available") from exc
    return "".join(ALPHABET[b % len(ALPHABET)] for b in raw)


def derive_challenge(verifier: str) -> str:
    """S256 code challenge = BASE64URL(SHA256(verifier)), no padding."""
    try:
        digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    except (AttributeError, ValueError) as exc:
        raise CryptoUnavailableError("SHA-256 digest unavailable") from exc
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce_pair(length: int = MAX_VERIFIER_LENGTH) -> PkcePair:
    verifier = generate_verifier(length)
    return PkcePair(verifier=verifier, challenge=derive_challenge(verifier))
