"""Text embedding backends used by the similarity-based metrics.

Two strategies are provided behind the ``EmbeddingBackend`` protocol:

- ``HashedVectorBackend`` (profile ``"vsa"``): a dense bipolar hypervector.
  Every token is expanded into a +1/-1 vector by an xorshift32 stream
  seeded from the FNV-1a hash of ``"<seed>:<token>"``; token vectors are
  bundled by majority (sign of the sum, ties to +1). Identical
  ``(text, dim, seed)`` always yields an identical vector, and no state
  is shared between calls, so a backend instance is safe to use from
  several threads.
- ``BagOfWordsBackend`` (profile ``"bow"``): sparse token counts.

Example:
    >>> backend = get_backend("vsa", dim=1000, seed=42)
    >>> a = backend.embed("Anna draws the sword")
    >>> b = backend.embed("the sword is drawn by Anna")
    >>> 0.0 < backend.cosine(a, b) <= 1.0
    True
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Mapping, Protocol

import numpy as np

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DIM = 1000
DEFAULT_SEED = 42

DENSE = "dense"
SPARSE = "sparse"

_NON_WORD_RE = re.compile(r"\W+")

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193
_MASK32 = 0xFFFFFFFF


def tokenize_words(text: str | None) -> list[str]:
    """Lowercase and split on runs of non-word characters, dropping empties."""
    return [t for t in _NON_WORD_RE.split(str(text or "").lower()) if t]


def fnv1a32(value: str) -> int:
    h = _FNV_OFFSET
    for ch in value:
        h ^= ord(ch)
        h = (h * _FNV_PRIME) & _MASK32
    return h


def _seed_label(seed: int | float) -> str:
    # 42 and 42.0 must hash identically
    if isinstance(seed, float) and seed.is_integer():
        return str(int(seed))
    return str(seed)


@dataclass(frozen=True, eq=False)
class Embedding:
    """A comparable representation of a piece of text.

    Attributes:
        kind: ``"dense"`` or ``"sparse"``.
        vector: Dense bipolar vector (dense kind only).
        counts: Token counts (sparse kind only).
        dim: Vector dimensionality (dense kind only).
        seed: Hash seed used to build the vector (dense kind only).
    """

    kind: str
    vector: np.ndarray | None = None
    counts: Mapping[str, int] | None = None
    dim: int | None = None
    seed: int | float | None = None


class EmbeddingBackend(Protocol):
    """Strategy for turning text into embeddings and comparing them."""

    profile: str

    def embed(self, text: str | None) -> Embedding:
        ...

    def cosine(self, a: Embedding | None, b: Embedding | None) -> float:
        ...


def cosine_dense(a: np.ndarray | None, b: np.ndarray | None) -> float:
    if a is None or b is None or a.shape != b.shape or a.size == 0:
        return 0.0
    fa = a.astype(np.float64, copy=False)
    fb = b.astype(np.float64, copy=False)
    norm_a = float(np.dot(fa, fa))
    norm_b = float(np.dot(fb, fb))
    if not norm_a or not norm_b:
        return 0.0
    return float(np.dot(fa, fb)) / (math.sqrt(norm_a) * math.sqrt(norm_b))


def cosine_sparse(a: Mapping[str, int] | None, b: Mapping[str, int] | None) -> float:
    if not a or not b:
        return 0.0
    norm_a = sum(v * v for v in a.values())
    norm_b = sum(v * v for v in b.values())
    if not norm_a or not norm_b:
        return 0.0
    small, large = (a, b) if len(a) <= len(b) else (b, a)
    dot = sum(v * large.get(k, 0) for k, v in small.items())
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def cosine_embedding(a: Embedding | None, b: Embedding | None) -> float:
    """Cosine similarity of two embeddings; 0 on missing input or kind mismatch."""
    if a is None or b is None or a.kind != b.kind:
        return 0.0
    if a.kind == DENSE:
        return cosine_dense(a.vector, b.vector)
    return cosine_sparse(a.counts, b.counts)


class HashedVectorBackend:
    """Deterministic dense hashed-projection embeddings (profile ``"vsa"``)."""

    profile = "vsa"

    def __init__(self, dim: int = DEFAULT_DIM, seed: int | float = DEFAULT_SEED) -> None:
        if int(dim) <= 0:
            raise ConfigurationError(
                f"Embedding dimension must be positive, got {dim}",
                context={"dim": dim},
            )
        self._dim = int(dim)
        self._seed = seed

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def seed(self) -> int | float:
        return self._seed

    def token_vectors(self, tokens: list[str]) -> np.ndarray:
        """Bipolar vectors for ``tokens``, one row per token."""
        label = _seed_label(self._seed)
        states = np.array(
            [fnv1a32(f"{label}:{tok}") or 1 for tok in tokens], dtype=np.uint32
        )
        out = np.empty((len(tokens), self._dim), dtype=np.int8)
        shift13, shift17, shift5 = np.uint32(13), np.uint32(17), np.uint32(5)
        # xorshift32 runs column by column, vectorized across tokens
        for i in range(self._dim):
            states ^= states << shift13
            states ^= states >> shift17
            states ^= states << shift5
            out[:, i] = np.where(states & np.uint32(1), 1, -1)
        return out

    def embed(self, text: str | None) -> Embedding:
        tokens = tokenize_words(text)
        if not tokens:
            vector = np.ones(self._dim, dtype=np.int8)
        else:
            counts = Counter(tokens)
            unique = sorted(counts)
            weights = np.array([counts[t] for t in unique], dtype=np.int64)
            sums = weights @ self.token_vectors(unique).astype(np.int64)
            vector = np.where(sums >= 0, 1, -1).astype(np.int8)
        return Embedding(kind=DENSE, vector=vector, dim=self._dim, seed=self._seed)

    def cosine(self, a: Embedding | None, b: Embedding | None) -> float:
        return cosine_embedding(a, b)

    def __repr__(self) -> str:
        return f"HashedVectorBackend(dim={self._dim}, seed={self._seed!r})"


class BagOfWordsBackend:
    """Sparse token-count embeddings (profile ``"bow"``)."""

    profile = "bow"

    def embed(self, text: str | None) -> Embedding:
        return Embedding(kind=SPARSE, counts=dict(Counter(tokenize_words(text))))

    def cosine(self, a: Embedding | None, b: Embedding | None) -> float:
        return cosine_embedding(a, b)

    def __repr__(self) -> str:
        return "BagOfWordsBackend()"


_BOW_PROFILES = {"bow", "basic"}


def get_backend(
    profile: str | None = "vsa",
    dim: int | None = None,
    seed: int | float | None = None,
) -> EmbeddingBackend:
    """Select the embedding backend for a profile name.

    Raises:
        ConfigurationError: If the profile is not recognized.
    """
    key = str(profile or "vsa").strip().lower()
    if key == "vsa":
        return HashedVectorBackend(
            dim=DEFAULT_DIM if dim is None else dim,
            seed=DEFAULT_SEED if seed is None else seed,
        )
    if key in _BOW_PROFILES:
        return BagOfWordsBackend()
    raise ConfigurationError(
        f"Unknown embedding profile '{profile}'",
        context={"profile": profile, "available": ["vsa", *sorted(_BOW_PROFILES)]},
    )
