"""
Perceptual hash registry.

Remembers the perceptual hashes of every damage photo already scored, keyed by
claim identifier, so later submissions can be checked for recycled photos.

Two stores share one interface:
- InMemoryHashRegistry: process lifetime, the default
- SQLiteHashRegistry: survives restarts when HASH_REGISTRY_PATH is set

Losing the registry only weakens duplicate detection; it is not a system of
record.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

import imagehash

from ..utils.config import get_settings

logger = logging.getLogger(__name__)


class HashMatch(NamedTuple):
    """A stored hash close to the one looked up."""

    claim_id: str
    hash: str
    distance: int


# =============================================================================
# Hash distance
# =============================================================================


def hamming_distance(hash1: str, hash2: str) -> int:
    """
    Number of differing bits between two hex-encoded perceptual hashes.

    Hashes of different lengths are incomparable and count as fully distinct.
    """
    if len(hash1) != len(hash2):
        return max(len(hash1), len(hash2)) * 4
    return int(imagehash.hex_to_hash(hash1) - imagehash.hex_to_hash(hash2))


def hash_similarity(distance: int, hash_hex: str) -> float:
    """Percentage of matching bits for a distance between hashes of this size."""
    bits = max(len(hash_hex) * 4, 1)
    return round(100.0 * (1 - distance / bits), 2)


def _matches(
    candidates: Iterable[Tuple[str, str]],
    hash_hex: str,
    max_distance: int,
) -> List[HashMatch]:
    """Filter (claim_id, hash) pairs down to those strictly closer than max_distance."""
    matches = []
    for claim_id, stored_hash in candidates:
        distance = hamming_distance(hash_hex, stored_hash)
        if distance < max_distance:
            matches.append(HashMatch(claim_id, stored_hash, distance))
    return matches


# =============================================================================
# Registry interface
# =============================================================================


class PerceptualHashRegistry(ABC):
    """Append-only store of claim id -> perceptual hashes."""

    @abstractmethod
    def lookup(
        self,
        hash_hex: str,
        exclude_claim_id: Optional[str] = None,
        max_distance: int = 5,
    ) -> List[HashMatch]:
        """
        Find stored hashes near hash_hex belonging to other claims.

        Args:
            hash_hex: Hex-encoded perceptual hash to check
            exclude_claim_id: Claim whose own hashes are ignored
            max_distance: Matches must be strictly closer than this many bits

        Returns:
            List of HashMatch, one per matching stored hash
        """
        pass

    @abstractmethod
    def append(self, claim_id: str, hash_hex: str) -> None:
        """Record a hash under a claim. Never overwrites earlier hashes."""
        pass

    @abstractmethod
    def hashes_for(self, claim_id: str) -> List[str]:
        """All hashes stored for one claim, in insertion order."""
        pass


class InMemoryHashRegistry(PerceptualHashRegistry):
    """
    Dictionary-backed registry.

    Usage:
        registry = InMemoryHashRegistry({"POL-1": ["ffe0..."]})
        registry.lookup(new_hash, exclude_claim_id="POL-2")
        registry.append("POL-2", new_hash)
    """

    def __init__(self, seed: Optional[Dict[str, List[str]]] = None):
        """Initialize, optionally pre-seeded with known hashes."""
        self._hashes: Dict[str, List[str]] = {
            claim_id: list(hashes) for claim_id, hashes in (seed or {}).items()
        }
        self._lock = threading.Lock()

    def lookup(
        self,
        hash_hex: str,
        exclude_claim_id: Optional[str] = None,
        max_distance: int = 5,
    ) -> List[HashMatch]:
        with self._lock:
            candidates = [
                (claim_id, stored)
                for claim_id, hashes in self._hashes.items()
                if claim_id != exclude_claim_id
                for stored in hashes
            ]
        return _matches(candidates, hash_hex, max_distance)

    def append(self, claim_id: str, hash_hex: str) -> None:
        with self._lock:
            self._hashes.setdefault(claim_id, []).append(hash_hex)

    def hashes_for(self, claim_id: str) -> List[str]:
        with self._lock:
            return list(self._hashes.get(claim_id, []))

    def __len__(self) -> int:
        with self._lock:
            return sum(len(hashes) for hashes in self._hashes.values())


class SQLiteHashRegistry(PerceptualHashRegistry):
    """
    SQLite-backed registry for deployments that want hashes to outlive the process.

    No external database setup required - the file and table are created on
    first use.
    """

    def __init__(self, db_path: Path):
        """Initialize the registry at db_path."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS image_hashes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    claim_id TEXT NOT NULL,
                    phash TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_hashes_claim ON image_hashes(claim_id)")
            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def lookup(
        self,
        hash_hex: str,
        exclude_claim_id: Optional[str] = None,
        max_distance: int = 5,
    ) -> List[HashMatch]:
        with self._get_connection() as conn:
            if exclude_claim_id is None:
                rows = conn.execute(
                    "SELECT claim_id, phash FROM image_hashes ORDER BY id"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT claim_id, phash FROM image_hashes WHERE claim_id != ? ORDER BY id",
                    (exclude_claim_id,)
                ).fetchall()
        return _matches(((row["claim_id"], row["phash"]) for row in rows), hash_hex, max_distance)

    def append(self, claim_id: str, hash_hex: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO image_hashes (claim_id, phash, created_at) VALUES (?, ?, ?)",
                (claim_id, hash_hex, datetime.now().isoformat())
            )
            conn.commit()

    def hashes_for(self, claim_id: str) -> List[str]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT phash FROM image_hashes WHERE claim_id = ? ORDER BY id",
                (claim_id,)
            ).fetchall()
        return [row["phash"] for row in rows]

    def count(self) -> int:
        """Total number of stored hashes."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT COUNT(*) FROM image_hashes").fetchone()
            return row[0]


# =============================================================================
# Convenience Functions
# =============================================================================


@lru_cache
def get_hash_registry() -> PerceptualHashRegistry:
    """Get the process-wide default registry (singleton)."""
    path = get_settings().hash_registry_path
    if path:
        logger.info(f"Using SQLite hash registry at {path}")
        return SQLiteHashRegistry(Path(path))
    logger.info("Using in-memory hash registry")
    return InMemoryHashRegistry()
