"""
Persisted "not a duplicate" decisions.

When an operator looks at a candidate pair and decides the two records are
different people (two coaches named Smith at one school, say), the pair is
dismissed and must never be proposed again. Dismissals are personal to the
operator: they live in a local key/value backend, not in the shared store.

A dismissed pair is stored as an order-independent key - the two ids as
strings, sorted, joined with "-" - in a list under a fixed key. The list is
append-only; the only way to remove entries is ``clear_all()``.

Usage:
    store = local_suppression_store("coach")
    store.dismiss(12, 7)
    store.is_dismissed(7, 12)   # True
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from coachtrack.config import settings

logger = logging.getLogger(__name__)

PAIR_SEPARATOR = "-"

# Fixed keys, one list per record type
COACH_PAIRS_KEY = "dismissedCoachPairs"
SCHOOL_PAIRS_KEY = "dismissedSchoolPairs"

_KEYS_BY_KIND = {
    "coach": COACH_PAIRS_KEY,
    "school": SCHOOL_PAIRS_KEY,
}


def pair_key(id_a: Any, id_b: Any) -> str:
    """
    Order-independent key for a pair of record ids.

    Examples:
        >>> pair_key(12, 7)
        '12-7'
        >>> pair_key(7, 12)
        '12-7'
    """
    return PAIR_SEPARATOR.join(sorted((str(id_a), str(id_b))))


# =============================================================================
# Key/value backends
# =============================================================================

class MemoryBackend:
    """Process-local backend, used in tests and for throwaway sessions."""

    def __init__(self):
        self._data: dict[str, list[str]] = {}

    def get(self, key: str) -> list[str] | None:
        values = self._data.get(key)
        return list(values) if values is not None else None

    def set(self, key: str, values: list[str]) -> None:
        self._data[key] = list(values)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileBackend:
    """
    Key/value backend stored as one JSON object in a local file.

    The whole file is read on every ``get`` and rewritten on every ``set``;
    it holds a handful of short lists, so that's fine.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, list[str]]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Suppression file {self.path} does not contain a JSON object")
        return data

    def _save(self, data: dict[str, list[str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        tmp_path.replace(self.path)

    def get(self, key: str) -> list[str] | None:
        return self._load().get(key)

    def set(self, key: str, values: list[str]) -> None:
        data = self._load()
        data[key] = list(values)
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


# =============================================================================
# Suppression store
# =============================================================================

class SuppressionStore:
    """
    Set of dismissed pair keys kept under one backend key.

    Args:
        backend: Any object with get/set/delete for lists of strings
        key: Backend key the list is stored under
    """

    def __init__(self, backend, key: str = COACH_PAIRS_KEY):
        self.backend = backend
        self.key = key

    def keys(self) -> list[str]:
        """All dismissed pair keys in the order they were added."""
        return list(self.backend.get(self.key) or [])

    def dismiss(self, id_a: Any, id_b: Any) -> str:
        """
        Record that two records are not duplicates.

        Dismissing an already-dismissed pair is a no-op.

        Returns:
            The pair key that was stored
        """
        key = pair_key(id_a, id_b)
        current = self.keys()
        if key not in current:
            current.append(key)
            self.backend.set(self.key, current)
            logger.info("Dismissed pair %s (%s)", key, self.key)
        return key

    def is_dismissed(self, id_a: Any, id_b: Any) -> bool:
        return pair_key(id_a, id_b) in set(self.keys())

    def snapshot(self) -> frozenset[str]:
        """Frozen copy of the dismissed keys for use during a scan."""
        return frozenset(self.keys())

    def clear_all(self) -> int:
        """
        Forget every dismissal. Callers should rescan afterwards.

        Returns:
            Number of pairs that were cleared
        """
        count = len(self.keys())
        self.backend.delete(self.key)
        logger.info("Cleared %d dismissed pairs (%s)", count, self.key)
        return count

    def __len__(self) -> int:
        return len(self.keys())


def local_suppression_store(kind: str = "coach", path: str | Path | None = None) -> SuppressionStore:
    """
    Suppression store backed by the operator's local JSON file.

    Args:
        kind: 'coach' or 'school'
        path: Override for ``settings.suppression_path``
    """
    if kind not in _KEYS_BY_KIND:
        raise ValueError(f"Unknown suppression kind: {kind}")
    backend = JsonFileBackend(path or settings.suppression_path)
    return SuppressionStore(backend, key=_KEYS_BY_KIND[kind])
