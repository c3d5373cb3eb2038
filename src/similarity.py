"""Body similarity for near-duplicate detection.

Two layers:

1. A cheap fingerprint per document (paragraph hashes plus a MinHash
   signature over word shingles) used to block the corpus into
   candidate pairs via locality-sensitive hashing, so we never compare
   every pair of documents.
2. A full similarity score for candidate pairs: the larger of the
   shared-paragraph fraction and the normalised edit-distance ratio
   (rapidfuzz) of the normalised bodies.
"""

from __future__ import annotations

import hashlib
import random
import re
from collections import defaultdict
from collections.abc import Mapping
from functools import lru_cache
from itertools import combinations

from pydantic import BaseModel, ConfigDict
from rapidfuzz import fuzz

from inkwell.config import ResolverConfig

_MERSENNE_PRIME = (1 << 61) - 1
_MAX_HASH = (1 << 32) - 1
_PERMUTATION_SEED = 1

MIN_SHARED_PARAGRAPHS = 2

_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_MARKUP_RE = re.compile(r"[*_`#>|]+")
_WS_RE = re.compile(r"\s+")


class Fingerprint(BaseModel):
    """Cheap similarity key for one document body."""

    model_config = ConfigDict(frozen=True)

    text: str
    paragraphs: frozenset[str]
    signature: tuple[int, ...]

    @property
    def is_empty(self) -> bool:
        return not self.text

    def bands(self, rows: int) -> list[tuple[int, ...]]:
        """Split the signature into LSH bands of ``rows`` values each."""
        if not self.signature:
            return []
        return [
            self.signature[i : i + rows]
            for i in range(0, len(self.signature) - rows + 1, rows)
        ]


def split_paragraphs(body: str) -> list[str]:
    """Split a Markdown body on blank lines, keeping fenced code blocks whole."""
    paragraphs: list[str] = []
    current: list[str] = []
    in_fence = False

    for line in body.splitlines():
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            current.append(line)
            continue
        if not in_fence and not line.strip():
            if current:
                paragraphs.append("\n".join(current))
                current = []
            continue
        current.append(line)

    if current:
        paragraphs.append("\n".join(current))
    return paragraphs


def normalize(text: str) -> str:
    """Lowercase, drop Markdown emphasis/heading markers, collapse whitespace."""
    text = _MARKUP_RE.sub(" ", text.lower())
    return _WS_RE.sub(" ", text).strip()


def _hash64(value: str) -> int:
    return int.from_bytes(hashlib.sha256(value.encode("utf-8")).digest()[:8], "big")


@lru_cache(maxsize=8)
def _permutations(num_perm: int) -> tuple[tuple[int, int], ...]:
    rng = random.Random(_PERMUTATION_SEED)
    return tuple(
        (rng.randrange(1, _MERSENNE_PRIME), rng.randrange(0, _MERSENNE_PRIME))
        for _ in range(num_perm)
    )


def shingles(text: str, size: int) -> set[str]:
    """Word n-grams of a normalised text."""
    words = text.split()
    if not words:
        return set()
    if len(words) <= size:
        return {" ".join(words)}
    return {" ".join(words[i : i + size]) for i in range(len(words) - size + 1)}


def minhash(tokens: set[str], num_perm: int) -> tuple[int, ...]:
    """Deterministic MinHash signature of a token set."""
    if not tokens:
        return ()
    hashes = [_hash64(t) for t in tokens]
    return tuple(
        min(((a * h + b) % _MERSENNE_PRIME) & _MAX_HASH for h in hashes)
        for a, b in _permutations(num_perm)
    )


def fingerprint(body: str, config: ResolverConfig | None = None) -> Fingerprint:
    """Build the similarity key for a document body."""
    config = config or ResolverConfig()
    paragraphs = frozenset(
        f"{_hash64(p):016x}"
        for p in (normalize(raw) for raw in split_paragraphs(body))
        if len(p) >= config.min_paragraph_chars
    )
    text = normalize(body)
    return Fingerprint(
        text=text,
        paragraphs=paragraphs,
        signature=minhash(shingles(text, config.shingle_size), config.num_perm),
    )


def candidate_pairs(
    fingerprints: Mapping[str, Fingerprint],
    config: ResolverConfig | None = None,
) -> set[tuple[str, str]]:
    """Pairs of ids worth a full comparison.

    Two documents are candidates when they share a paragraph hash or any
    LSH band of their MinHash signatures. Pairs are ordered (low, high).
    """
    config = config or ResolverConfig()
    rows = config.rows_per_band
    buckets: defaultdict[tuple[object, ...], set[str]] = defaultdict(set)

    for doc_id, fp in fingerprints.items():
        for para in fp.paragraphs:
            buckets[("para", para)].add(doc_id)
        for idx, band in enumerate(fp.bands(rows)[: config.bands]):
            buckets[("band", idx, band)].add(doc_id)

    pairs: set[tuple[str, str]] = set()
    for members in buckets.values():
        if len(members) > 1:
            pairs.update(combinations(sorted(members), 2))
    return pairs


def paragraph_overlap(
    a: Fingerprint, b: Fingerprint, *, min_shared: int = MIN_SHARED_PARAGRAPHS
) -> float:
    """Shared paragraphs as a fraction of the shorter document's paragraphs.

    Fewer than ``min_shared`` common paragraphs count as no overlap, so a
    shared intro or footer alone does not make two posts revisions.
    """
    denom = min(len(a.paragraphs), len(b.paragraphs))
    shared = len(a.paragraphs & b.paragraphs)
    if denom == 0 or shared < min_shared:
        return 0.0
    return shared / denom


def similarity(a: Fingerprint, b: Fingerprint) -> float:
    """Similarity in [0, 1] of two fingerprinted bodies.

    Empty bodies are never similar to anything.
    """
    if a.is_empty or b.is_empty:
        return 0.0
    edit_ratio = fuzz.ratio(a.text, b.text) / 100.0
    return max(paragraph_overlap(a, b), edit_ratio)
