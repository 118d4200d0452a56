"""
chirps/filter.py -- Chirp body validation and profanity masking.

Words are split on single spaces and compared case-insensitively as whole
words, so "Kerfuffle!" (with punctuation attached) is left alone.
"""

from __future__ import annotations

from core.errors import ValidationFailure

MAX_CHIRP_LENGTH = 140

PROFANE_WORDS = frozenset({"kerfuffle", "sharbert", "fornax"})

_MASK = "****"


def clean_body(body: str) -> str:
    """Return body with profane words masked.

    Raises ValidationFailure if body is longer than MAX_CHIRP_LENGTH. The
    length check runs on the raw text, before masking.
    """
    if len(body) > MAX_CHIRP_LENGTH:
        raise ValidationFailure("Chirp is too long")
    words = body.split(" ")
    return " ".join(_MASK if word.lower() in PROFANE_WORDS else word for word in words)
