"""Local embeddings and vector helpers for semantic clustering.

The local embedding is a hashed bag of words: it needs no model or network
and is fully deterministic, so it backs every entity whose embedding the
configured provider cannot supply.
"""

import math
import re
from collections import Counter
from collections.abc import Sequence

import numpy as np

from codeviz.analyzers.constants import STOP_WORDS

DEFAULT_DIMENSIONS = 64

_TOKEN_RE = re.compile(r"[a-z0-9_]+")
_KEYWORD_RE = re.compile(r"\b[a-z][a-z0-9]*\b", re.ASCII)


def _hash_token(token: str) -> int:
    """Polynomial string hash (``h * 31 + c``) wrapped to a signed 32-bit int."""
    h = 0
    for ch in token:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def local_embedding(text: str, dimensions: int = DEFAULT_DIMENSIONS) -> list[float]:
    """Generate a deterministic embedding from token hashes.

    Tokens are lowercase alphanumeric words longer than two characters.
    Each distinct token lands in dimension ``abs(hash) % dimensions`` with
    weight ``count * (1 + ln(count))``; the vector is then L2-normalized.
    Text without tokens yields the zero vector.

    Args:
        text: Source text (code or prose).
        dimensions: Vector length.

    Returns:
        Embedding of length ``dimensions``.

    Raises:
        ValueError: If dimensions is not positive.
    """
    if dimensions <= 0:
        raise ValueError(f"dimensions must be positive, got {dimensions}")

    counts = Counter(token for token in _TOKEN_RE.findall(text.lower()) if len(token) > 2)

    vector = np.zeros(dimensions)
    for token, count in counts.items():
        vector[abs(_hash_token(token)) % dimensions] += count * (1 + math.log(count))

    magnitude = np.linalg.norm(vector)
    if magnitude > 0:
        vector /= magnitude

    return vector.tolist()


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance over the shared prefix of two vectors."""
    n = min(len(a), len(b))
    if n == 0:
        return 0.0
    diff = np.asarray(a[:n], dtype=float) - np.asarray(b[:n], dtype=float)
    return float(np.sqrt(np.dot(diff, diff)))


def calculate_centroid(vectors: Sequence[Sequence[float]]) -> list[float]:
    """Component-wise mean of equal-length vectors (empty input gives [])."""
    if len(vectors) == 0:
        return []
    return np.asarray(vectors, dtype=float).mean(axis=0).tolist()


def extract_keywords(contents: Sequence[str], top_n: int = 10) -> list[str]:
    """Most frequent meaningful words across a set of texts.

    Words must start with a letter, be longer than two characters, and not
    be stop words. Ties keep first-seen order.

    Args:
        contents: Texts to scan.
        top_n: Number of keywords to return.

    Returns:
        Up to ``top_n`` keywords, most frequent first.
    """
    counts: Counter[str] = Counter()
    for content in contents:
        for word in _KEYWORD_RE.findall(content.lower()):
            if len(word) > 2 and word not in STOP_WORDS:
                counts[word] += 1

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [word for word, _ in ranked[:top_n]]
