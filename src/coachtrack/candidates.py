"""
Candidate pair enumeration shared by coach and school dedup.

Both dedup flows work the same way: compare every unordered pair of
records inside a partition, drop pairs the operator has dismissed, classify
the rest, score the survivors and show them best-first. Only the partition,
the classifier and the score differ, so those are passed in.

Pairs are never cached. The scan is cheap at club scale and is simply
rerun after each merge or dismissal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Optional

from coachtrack.suppression import SuppressionStore, pair_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuplicateCandidate:
    """Two records flagged as possibly the same real-world entity."""
    record_a: Any
    record_b: Any
    match_type: str  # 'exact' or 'fuzzy'
    score: int

    @property
    def pair_key(self) -> str:
        return pair_key(self.record_a.id, self.record_b.id)

    def involves(self, record_id: Any) -> bool:
        return record_id in (self.record_a.id, self.record_b.id)

    def __repr__(self) -> str:
        return (
            f"<DuplicateCandidate({self.record_a.id} <-> {self.record_b.id}, "
            f"type='{self.match_type}', score={self.score})>"
        )


def scan_pairs(
    records: Iterable[Any],
    classify: Callable[[Any, Any], str],
    score: Callable[[Any, Any], int],
    partition_key: Optional[Callable[[Any], Hashable]] = None,
    is_dismissed: Optional[Callable[[Any, Any], bool]] = None,
) -> list[DuplicateCandidate]:
    """
    Enumerate, classify and rank candidate pairs.

    Args:
        records: Records with an ``id`` attribute, in display order
        classify: Returns 'exact', 'fuzzy' or 'none' for a pair, as a
            string or a str-valued Enum such as MatchType
        score: Integer confidence for a pair (higher = better)
        partition_key: Pairs are only formed within one partition value
        is_dismissed: Called with the two ids; True skips the pair

    Returns:
        Candidates sorted by score, highest first. Ties keep the order in
        which the pairs appear in ``records``.
    """
    records = list(records)

    partitions: dict[Hashable, list[int]] = {}
    for index, record in enumerate(records):
        key = partition_key(record) if partition_key else None
        partitions.setdefault(key, []).append(index)

    found: list[tuple[int, int, DuplicateCandidate]] = []
    for indices in partitions.values():
        if len(indices) < 2:
            continue
        for pos, i in enumerate(indices):
            a = records[i]
            for j in indices[pos + 1:]:
                b = records[j]
                if is_dismissed and is_dismissed(a.id, b.id):
                    continue
                match_type = classify(a, b)
                if isinstance(match_type, Enum):
                    match_type = match_type.value
                if match_type == "none":
                    continue
                found.append((i, j, DuplicateCandidate(
                    record_a=a,
                    record_b=b,
                    match_type=match_type,
                    score=score(a, b),
                )))

    # Global (i, j) order first so the score sort is stable against input order
    found.sort(key=lambda item: (item[0], item[1]))
    candidates = [candidate for _, _, candidate in found]
    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates


def dismissed_filter(
    suppression: Optional[SuppressionStore],
) -> Optional[Callable[[Any, Any], bool]]:
    """
    Build an ``is_dismissed`` callable from a store snapshot.

    The store is read once, so a scan costs one backend read however many
    pairs it checks.
    """
    if suppression is None:
        return None
    dismissed = suppression.snapshot()

    def is_dismissed(id_a: Any, id_b: Any) -> bool:
        return pair_key(id_a, id_b) in dismissed

    return is_dismissed


@dataclass
class DuplicateScan:
    """
    Result of one dedup scan, as shown to the operator.

    ``dependent_counts`` is per-record context for the merge decision
    (attendance rows per coach, coaches per school).
    """
    candidates: list[DuplicateCandidate]
    dependent_counts: dict[Any, int] = field(default_factory=dict)
    total_records: int = 0
    suppression: Optional[SuppressionStore] = None

    @property
    def exact_count(self) -> int:
        return sum(1 for c in self.candidates if c.match_type == "exact")

    @property
    def fuzzy_count(self) -> int:
        return sum(1 for c in self.candidates if c.match_type == "fuzzy")

    def count_for(self, record_id: Any) -> int:
        return self.dependent_counts.get(record_id, 0)

    def filter(self, match_type: str = "all") -> list[DuplicateCandidate]:
        """Candidates of one match type ('exact', 'fuzzy' or 'all')."""
        if match_type == "all":
            return list(self.candidates)
        return [c for c in self.candidates if c.match_type == match_type]

    def dismiss(self, id_a: Any, id_b: Any) -> None:
        """
        Mark a pair as not a duplicate.

        Persists the dismissal (when a store is attached) and drops the pair
        from this scan straight away rather than waiting for a rescan.
        """
        key = pair_key(id_a, id_b)
        if self.suppression is not None:
            self.suppression.dismiss(id_a, id_b)
        self.candidates = [c for c in self.candidates if c.pair_key != key]

    def discard_record(self, record_id: Any) -> None:
        """Drop every pair involving a record (e.g. one that was just merged away)."""
        self.candidates = [c for c in self.candidates if not c.involves(record_id)]
