"""
Path confinement for file-backed JWKS.

``canonicalize_within`` is the single gate every caller-supplied file path
passes before the filesystem is touched. It works purely lexically; the
symlink check in ``ensure_real_path_within`` runs afterwards, once the
candidate is known to be inside the base directory.
"""

import os
import unicodedata
from pathlib import Path
from typing import Iterator, Union
from urllib.parse import unquote

from shared.errors import SecurityError

MAX_DECODE_ROUNDS = 3

# Encodings of "." "/" and "\" that do not decode to ASCII through unquote.
OVERLONG_MARKERS = (
    "%c0%ae",
    "%c0%2e",
    "%c0%af",
    "%c1%9c",
    "%c1%1c",
    "%e0%80%ae",
    "%u002e",
    "%u2215",
    "%u2216",
    "%uff0e",
)

OUTSIDE_BASE_MESSAGE = "File path must be within allowed directory: {base}"

PathLike = Union[str, Path]


def _has_dot_segment(value: str) -> bool:
    normalized = unicodedata.normalize("NFKC", value)
    segments = normalized.replace("\\", "/").split("/")
    return any(segment == ".." for segment in segments)


def _decoded_forms(value: str) -> Iterator[str]:
    """Yield ``value`` and each successive percent-decoding of it.

    Raises ``SecurityError`` when the value still decodes further after
    ``MAX_DECODE_ROUNDS`` rounds.
    """
    candidate = value
    for _ in range(MAX_DECODE_ROUNDS):
        yield candidate
        decoded = unquote(candidate)
        if decoded == candidate:
            return
        candidate = decoded
    yield candidate
    if unquote(candidate) != candidate:
        raise SecurityError("File path is encoded too many times", details={"reason": "nested_encoding"})


def contains_traversal(value: str) -> bool:
    """True if ``value`` holds a ``..`` segment in raw or encoded form."""
    try:
        for form in _decoded_forms(value):
            if _has_dot_segment(form):
                return True
            lowered = form.lower()
            if any(marker in lowered for marker in OVERLONG_MARKERS):
                return True
    except SecurityError:
        return True
    return False


def is_within(path: PathLike, base: PathLike) -> bool:
    """Lexical containment test on already normalized absolute paths."""
    path, base = str(path), str(base)
    try:
        return os.path.commonpath([path, base]) == base
    except ValueError:
        return False


def canonicalize_within(raw: str, base: PathLike) -> Path:
    """Resolve ``raw`` against ``base`` and prove it stays inside.

    Relative paths are taken relative to ``base``. Raises ``SecurityError``
    for NUL bytes, traversal sequences (plain, percent-encoded, double
    encoded, overlong or full-width) and absolute paths outside ``base``.
    """
    base_path = os.path.normpath(os.path.abspath(str(base)))
    message = OUTSIDE_BASE_MESSAGE.format(base=base_path)

    if any("\x00" in form for form in _decoded_forms(raw)):
        raise SecurityError("File path contains invalid characters", details={"reason": "nul_byte"})

    if contains_traversal(raw):
        raise SecurityError(message, details={"reason": "traversal_sequence"})

    candidate = os.path.normpath(os.path.join(base_path, raw))
    if not is_within(candidate, base_path):
        raise SecurityError(message, details={"reason": "outside_base"})

    return Path(candidate)


def ensure_real_path_within(candidate: PathLike, base: PathLike) -> Path:
    """Follow symlinks and re-check containment against the real base."""
    real_base = os.path.realpath(str(base))
    real_candidate = os.path.realpath(str(candidate))
    if not is_within(real_candidate, real_base):
        raise SecurityError(
            OUTSIDE_BASE_MESSAGE.format(base=os.path.normpath(str(base))),
            details={"reason": "symlink_escape"},
        )
    return Path(real_candidate)
