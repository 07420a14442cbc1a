"""
Storage module for the perceptual hash registry.

Provides the store behind cross-claim duplicate photo detection:
- In-memory registry (default, process lifetime)
- SQLite registry (optional, survives restarts)
"""

from .hash_registry import (
    HashMatch,
    InMemoryHashRegistry,
    PerceptualHashRegistry,
    SQLiteHashRegistry,
    get_hash_registry,
    hamming_distance,
    hash_similarity,
)

__all__ = [
    "HashMatch",
    "PerceptualHashRegistry",
    "InMemoryHashRegistry",
    "SQLiteHashRegistry",
    "get_hash_registry",
    "hamming_distance",
    "hash_similarity",
]
